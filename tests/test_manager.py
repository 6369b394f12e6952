"""Tests for the package workflows, with external commands stubbed out."""

import io
import shutil

import pytest
from rich.console import Console

from mpr_manager.core import commands
from mpr_manager.core import manager as manager_module
from mpr_manager.core.config import Settings
from mpr_manager.core.errors import MprError, PackageNotInstalledError, ParallelWorkError
from mpr_manager.core.manager import PackageManager

needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash is not installed")

HELLO = """\
pkgname=hello
pkgver='2.12'
pkgrel=1
source=("https://ftp.gnu.org/gnu/hello/hello-${pkgver}.tar.gz")
sha256sums=('0000')
"""


@pytest.fixture
def manager(tmp_path):
    settings = Settings(packages_dir=tmp_path, concurrency=2)
    return PackageManager(settings=settings, console=Console(file=io.StringIO()))


@pytest.fixture
def hello(tmp_path):
    pkg_dir = tmp_path / "hello"
    pkg_dir.mkdir()
    (pkg_dir / ".git").mkdir()
    (pkg_dir / "PKGBUILD").write_text(HELLO)
    return pkg_dir


@pytest.fixture
def ran(monkeypatch):
    """Record run_command calls instead of executing them."""
    calls = []

    def run_command(args, cwd=None, loud=True):
        calls.append((list(args), cwd))

    monkeypatch.setattr(commands, "run_command", run_command)
    return calls


# ═══════════════════════════════════════════
# PKGBUILD Maintenance
# ═══════════════════════════════════════════


@needs_bash
class TestUpdateVersion:
    def test_patches_pkgver_and_sums(self, manager, hello, monkeypatch):
        outputs = {
            ("makedeb", "-g"): "sha256sums=('1111')\n",
            ("makedeb", "--print-srcinfo"): "pkgbase = hello\n",
        }
        monkeypatch.setattr(commands, "capture_command", lambda args, cwd=None: outputs[tuple(args)])

        manager.update_version("hello", "2.12.1")

        text = (hello / "PKGBUILD").read_text()
        assert "pkgver='2.12.1'\n" in text
        assert "sha256sums=('1111')\n" in text
        assert "pkgrel=1\n" in text
        assert (hello / ".SRCINFO").read_text() == "pkgbase = hello\n"

    def test_srcinfo_write_failure(self, manager, hello, monkeypatch):
        outputs = {
            ("makedeb", "-g"): "sha256sums=('1111')\n",
            ("makedeb", "--print-srcinfo"): "pkgbase = hello\n",
        }
        monkeypatch.setattr(commands, "capture_command", lambda args, cwd=None: outputs[tuple(args)])
        (hello / ".SRCINFO").mkdir()

        with pytest.raises(MprError, match="could not write .SRCINFO"):
            manager.recompute_sums("hello")

    def test_missing_pkgver(self, manager, hello):
        (hello / "PKGBUILD").write_text("pkgname=hello\n")
        with pytest.raises(MprError):
            manager.update_version("hello", "1.0")


# ═══════════════════════════════════════════
# Local Workflows
# ═══════════════════════════════════════════


@needs_bash
class TestLocalWorkflows:
    def test_info(self, manager, hello):
        variables = manager.info("hello")
        assert variables["pkgver"] == ["2.12"]
        assert variables["source"] == ["https://ftp.gnu.org/gnu/hello/hello-2.12.tar.gz"]

    def test_clone_existing(self, manager, hello, ran):
        with pytest.raises(MprError, match="already exists"):
            manager.clone("hello")
        assert ran == []

    def test_clone(self, manager, ran, tmp_path):
        assert manager.clone("someone/world") == "world"
        assert ran == [(["git", "clone", "https://github.com/someone/world", "world"], tmp_path)]

    def test_uninstall_unknown(self, manager, hello, ran):
        with pytest.raises(PackageNotInstalledError):
            manager.uninstall("nope")
        assert ran == []

    def test_upgrade_only_behind(self, manager, hello, ran, monkeypatch):
        receipts = []
        monkeypatch.setattr(manager_module, "is_behind", lambda pkg_dir: True)
        monkeypatch.setattr(manager_module, "write_receipt", receipts.append)
        monkeypatch.setattr(commands, "install_makedeb", lambda: None)

        assert manager.upgrade([], confirm=False) == ["hello"]
        assert ran == [(["makedeb", "-si", "--no-confirm"], hello)]
        assert receipts == [hello]


# ═══════════════════════════════════════════
# Network Workflows
# ═══════════════════════════════════════════


@needs_bash
class TestCheckStale:
    @pytest.mark.asyncio
    async def test_reports_stale(self, manager, hello, tmp_path, monkeypatch):
        world = tmp_path / "world-bin"
        world.mkdir()
        (world / ".git").mkdir()
        (world / "PKGBUILD").write_text("pkgname=world-bin\npkgver=1.0\n")

        newest = {"hello": "2.12.1", "world": "1.0"}

        async def get_latest_version(self, pkgname):
            return newest[pkgname]

        monkeypatch.setattr(manager_module.RepologyClient, "get_latest_version", get_latest_version)

        stale = await manager.check_stale()
        assert [(s.name, s.current, s.newest) for s in stale] == [("hello", "2.12", "2.12.1")]

    @pytest.mark.asyncio
    async def test_errors_collected(self, manager, hello, monkeypatch):
        async def get_latest_version(self, pkgname):
            raise MprError("boom")

        monkeypatch.setattr(manager_module.RepologyClient, "get_latest_version", get_latest_version)

        with pytest.raises(ParallelWorkError) as excinfo:
            await manager.check_stale()
        assert [item for item, _ in excinfo.value.failures] == ["hello"]
