from clickhouse_core.driver.summary import QuerySummary


def test_summary_from_headers():
    headers = {'X-ClickHouse-Summary': '{"read_rows":"10","read_bytes":"80","written_rows":"2","written_bytes":"16",'
                                       '"total_rows_to_read":"10","result_rows":"2","result_bytes":"16",'
                                       '"elapsed_ns":"1234567"}'}
    summary = QuerySummary.from_headers(headers)
    assert summary.read_rows == 10
    assert summary.read_bytes == 80
    assert summary.written_rows == 2
    assert summary.written_bytes == 16
    assert summary.total_rows_to_read == 10
    assert summary.result_rows == 2
    assert summary.result_bytes == 16
    assert summary.elapsed_ns == 1234567


def test_missing_or_invalid_summary():
    assert QuerySummary.from_headers({}) == QuerySummary()
    summary = QuerySummary.from_headers({'X-ClickHouse-Summary': '{"read_rows":'})
    assert summary.summary == {}
    assert summary.read_rows == 0
    assert QuerySummary.from_headers({'X-ClickHouse-Summary': '[1, 2]'}).summary == {}
