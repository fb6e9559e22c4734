import os
from setuptools import setup, find_packages


def run_setup():
    project_dir = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(project_dir, 'README.md'), encoding='utf-8') as read_me:
        long_desc = read_me.read()

    version_fn = '.dev_version' if os.path.isfile('.dev_version') else 'clickhouse_core/VERSION'
    with open(os.path.join(project_dir, version_fn), encoding='utf-8') as version_file:
        version = version_file.readline().strip()

    setup(
        name='clickhouse-core',
        author='ClickHouse Inc.',
        author_email='clients@clickhouse.com',
        keywords=['clickhouse', 'asyncio', 'aiohttp', 'http', 'driver'],
        description='Asynchronous ClickHouse HTTP client with streaming queries and inserts',
        version=version,
        long_description=long_desc,
        long_description_content_type='text/markdown',
        package_data={'clickhouse_core': ['VERSION']},
        url='https://github.com/ClickHouse/clickhouse-connect',
        packages=find_packages(exclude=['tests*']),
        python_requires='>=3.8',
        license='Apache License 2.0',
        install_requires=[
            'aiohttp>=3.8',
            'certifi',
            'pytz',
            'zstandard',
            'lz4'
        ],
        extras_require={
            'orjson': ['orjson'],
            'test': ['pytest'],
        },
        classifiers=[
            'Development Status :: 4 - Beta',
            'Intended Audience :: Developers',
            'License :: OSI Approved :: Apache Software License',
            'Framework :: AsyncIO',
            'Programming Language :: Python :: 3.8',
            'Programming Language :: Python :: 3.9',
            'Programming Language :: Python :: 3.10',
            'Programming Language :: Python :: 3.11',
            'Programming Language :: Python :: 3.12'
        ]
    )


run_setup()
