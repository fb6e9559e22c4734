#!/usr/bin/env python -u

import asyncio
from datetime import datetime

from clickhouse_core.driver import create_client

QUERIES = 10
SEMAPHORE = 2


async def concurrent_queries():
    test_query = 'SELECT sleep(2)'
    async with create_client() as client:
        start = datetime.now()

        async def semaphore_wrapper(sm: asyncio.Semaphore, num: int):
            async with sm:
                result = await client.query(test_query, 'JSONEachRow')
                await result.json()
                print(f'Completed query {num}, '
                      f'elapsed ms since start: {int((datetime.now() - start).total_seconds() * 1000)}')

        semaphore = asyncio.Semaphore(SEMAPHORE)
        await asyncio.gather(*[semaphore_wrapper(semaphore, num) for num in range(QUERIES)])


async def stream_insert():
    async with create_client(settings={'async_insert': 1}) as client:
        await client.command('CREATE TABLE IF NOT EXISTS test_stream (id UInt32, name String) '
                             'ENGINE MergeTree ORDER BY id')

        async def rows():
            for ix in range(100_000):
                yield {'id': ix, 'name': f'name_{ix}'}

        await client.insert('test_stream', rows(), 'JSONEachRow')
        result = await client.query('SELECT count() AS cnt FROM test_stream', 'JSONEachRow')
        async for row in result:
            print(row.json())
        await client.command('DROP TABLE test_stream')


if __name__ == '__main__':
    asyncio.run(concurrent_queries())
    asyncio.run(stream_insert())
