import os, importlib.util

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
SAMPLE_STAT = os.path.join(REPO_ROOT, 'tests', 'data', 'sample_xfs_stat')


def _load_script():
    path = os.path.join(REPO_ROOT, 'scripts', 'print_xfs_stats.py')
    spec = importlib.util.spec_from_file_location('print_xfs_stats', path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_prints_log_counters(capsys):
    rc = _load_script().main(['--path', SAMPLE_STAT])
    out = capsys.readouterr().out
    assert rc == 0
    assert 'Log writes: 129491915' in out
    assert 'Log blocks: 3992515264' in out


def test_missing_file_exit_code(capsys):
    rc = _load_script().main(['--path', '/nonexistent/xfs/stat'])
    assert rc == 1
    assert 'FileNotFoundError' in capsys.readouterr().err
