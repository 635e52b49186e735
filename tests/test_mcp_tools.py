import os, tempfile
import pytest
from xfs_mcp import mcp_app


def _tool(t):
    """Helper to get the underlying function from MCP tool wrapper"""
    return getattr(t, 'fn', t)


SAMPLE_STAT = os.path.abspath(os.path.join(os.path.dirname(__file__), 'data', 'sample_xfs_stat'))


@pytest.fixture(autouse=True)
def stat_env(monkeypatch):
    monkeypatch.setenv('XFS_STAT_PATH', SAMPLE_STAT)
    yield


def test_xfs_stat_full_report():
    body = _tool(mcp_app.xfs_stat)()
    assert body['path'] == SAMPLE_STAT
    assert body['extent_allocation']['freed_extents'] == 4618726
    assert body['tail_pushing_stats']['push_ails'] == 6896837
    assert body['transactions']['async'] == 38184616


def test_xfs_stat_missing_file():
    body = _tool(mcp_app.xfs_stat)(path='/nonexistent/xfs/stat')
    assert body['error'] == 'FileNotFoundError'


def test_xfs_stat_parse_failure_reason():
    fd, path = tempfile.mkstemp(prefix='xfs_stat_')
    with os.fdopen(fd, 'wb') as f:
        f.write(b"extent_alloc 1 2 3 4\nabtx 1 2 3 4\n")
    try:
        body = _tool(mcp_app.xfs_stat)(path=path)
    finally:
        os.unlink(path)
    assert body['error'] == 'ParseFailure'
    assert body['reason'] == 'abt:expected_whitespace'
    assert body['position'] == 21


def test_xfs_metrics_filtered():
    body = _tool(mcp_app.xfs_metrics)(record_types=['ig'])
    assert body['count'] == 7
    names = [s['name'] for s in body['samples']]
    assert names[0] == 'xfs_ig_cache_lookups_total'
    assert body['samples'][0]['value'] == 17754368.0


def test_xfs_metrics_unknown_record_type():
    body = _tool(mcp_app.xfs_metrics)(record_types=['rw'])
    assert body['error'] == 'unknown_record_type'
    assert 'push_ail' in body['known']


def test_metric_discover_ranks_name_matches():
    result = _tool(mcp_app.xfs_metric_discover)("log writes", top_k=3)
    assert result['query'] == "log writes"
    assert result['candidates'][0]['name'] == 'xfs_log_log_writes_total'
    assert len(result['candidates']) <= 3


def test_metric_discover_empty():
    assert _tool(mcp_app.xfs_metric_discover)("zzzqqq")['candidates'] == []
    assert _tool(mcp_app.xfs_metric_discover)("abt", top_k=0)['candidates'] == []


def test_metric_schema():
    body = _tool(mcp_app.xfs_metric_schema)('XFS_BMBT_DELETES_TOTAL')
    assert body['record_type'] == 'bmbt'
    assert body['field'] == 'deletes'
    assert body['bits'] == 32
    assert _tool(mcp_app.xfs_metric_schema)('nope')['error'] == 'unknown_metric'


def test_healthz_and_init_server():
    h = _tool(mcp_app.healthz)()
    assert h['status'] == 'ok' and h['stat_present'] is True
    status = mcp_app.init_server()
    assert status['parse'] == 'ok'


def test_system_prompt_mentions_tools():
    for name in ('xfs_stat', 'xfs_metrics', 'xfs_metric_discover', 'xfs_metric_schema'):
        assert name in mcp_app.SYSTEM_PROMPT


@pytest.mark.skipif(not os.path.exists('/dev/zero'), reason='needs /dev/zero')
def test_xfs_stat_device_path_returns_error():
    body = _tool(mcp_app.xfs_stat)(path='/dev/zero')
    assert body['error'] == 'OSError'
    assert 'not a regular file' in body['detail']


def test_xfs_metrics_empty_record_types():
    body = _tool(mcp_app.xfs_metrics)(record_types=[])
    assert body['count'] == 0 and body['samples'] == []
