"""
Shared fixtures for rootshell tests.

Tests run against a local `sh`, so no device is needed. A "root" shell is
simulated by spawning sh for ShellType.ROOT and shadowing `id` with a
shell function.
"""
import pytest

from rootshell.core.manager import ShellManager
from rootshell.core.models import ShellType
from rootshell.core.shell import ShellSession
from rootshell.utils import analytics

FAKE_ROOT_ID = 'id() { echo "uid=0(root) gid=0(root) groups=0(root)"; }'
FAKE_USER_ID = 'id() { echo "uid=2000(shell) gid=2000(shell) groups=2000(shell)"; }'


@pytest.fixture
def session():
    """A started non-root sh session, closed after the test."""
    s = ShellSession(ShellType.NON_ROOT, argv=["sh"])
    s.start()
    yield s
    s.close()


@pytest.fixture
def manager():
    """A manager whose root shell is a plain sh."""
    with ShellManager(argv={ShellType.ROOT: ["sh"], ShellType.NON_ROOT: ["sh"]}) as m:
        yield m


@pytest.fixture(autouse=True)
def analytics_file(tmp_path, monkeypatch):
    """Keep analytics out of the home directory."""
    path = tmp_path / "analytics.jsonl"
    monkeypatch.setattr(analytics, "ANALYTICS_FILE", path)
    return path
