"""Tests for package discovery, settings and install receipts."""

import shutil
import subprocess

import pytest

from mpr_manager.core.config import Settings
from mpr_manager.core.packages import get_package_url, list_packages, package_name_from_url
from mpr_manager.core.receipts import (
    NOT_A_GIT_REPOSITORY,
    get_head_commit,
    is_behind,
    read_receipt,
    write_receipt,
)

needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash is not installed")
needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def make_package(root, dirname, pkgbuild, git=True):
    pkg_dir = root / dirname
    pkg_dir.mkdir()
    if pkgbuild is not None:
        (pkg_dir / "PKGBUILD").write_text(pkgbuild)
    if git:
        (pkg_dir / ".git").mkdir()
    return pkg_dir


def git_repo(path):
    subprocess.run(["git", "init", "-q", str(path)], check=True)
    (path / "PKGBUILD").write_text("pkgname=hello\n")
    env_args = ["-c", "user.name=t", "-c", "user.email=t@example.com"]
    subprocess.run(["git", *env_args, "-C", str(path), "add", "."], check=True)
    subprocess.run(["git", *env_args, "-C", str(path), "commit", "-q", "-m", "init"], check=True)
    return path


# ═══════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════


class TestSettings:
    def test_mpr_dir_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MPR_DIR", str(tmp_path))
        monkeypatch.setenv("EDITOR", "nano")
        settings = Settings.from_env()
        assert settings.packages_dir == tmp_path
        assert settings.editor == "nano"

    def test_xdg_cache_default(self, monkeypatch, tmp_path):
        monkeypatch.delenv("MPR_DIR", raising=False)
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
        assert Settings.from_env().packages_dir == tmp_path / "mpr-packages"

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MPR_DIR", "/nowhere")
        settings = Settings.from_env(packages_dir=tmp_path, concurrency=2, editor=None)
        assert settings.packages_dir == tmp_path
        assert settings.concurrency == 2

    def test_package_dir_created(self, tmp_path):
        settings = Settings(packages_dir=tmp_path / "pkgs")
        assert settings.package_dir("hello") == tmp_path / "pkgs" / "hello"
        assert (tmp_path / "pkgs").is_dir()


# ═══════════════════════════════════════════
# Package URLs
# ═══════════════════════════════════════════


class TestPackageURL:
    def test_github_spec(self):
        assert get_package_url("someone/hello") == "https://github.com/someone/hello"

    def test_mpr_spec(self):
        assert get_package_url("Hello_World-bin") == "https://mpr.makedeb.org/Hello_World-bin"

    def test_url_passes_through(self):
        url = "https://gitlab.com/someone/hello.git"
        assert get_package_url(url) == url

    @pytest.mark.parametrize(
        "url, name",
        [
            ("https://mpr.makedeb.org/hello", "hello"),
            ("https://gitlab.com/someone/hello.git", "hello"),
            ("git@github.com:hello.git", "hello"),
        ],
    )
    def test_name_from_url(self, url, name):
        assert package_name_from_url(url) == name


# ═══════════════════════════════════════════
# Discovery
# ═══════════════════════════════════════════


@needs_bash
class TestListPackages:
    def test_finds_valid_packages(self, tmp_path):
        make_package(tmp_path, "zsh-bin", "pkgname=zsh-bin\n")
        make_package(tmp_path, "hello", "pkgname=hello\n")
        make_package(tmp_path, "no-git", "pkgname=no-git\n", git=False)
        make_package(tmp_path, "no-pkgbuild", None)
        make_package(tmp_path, "split", "pkgname=(one two)\n")
        make_package(tmp_path, "broken", "exit 1\n")
        (tmp_path / "stray-file").write_text("")

        assert list_packages(Settings(packages_dir=tmp_path)) == ["hello", "zsh-bin"]


# ═══════════════════════════════════════════
# Receipts
# ═══════════════════════════════════════════


@needs_git
class TestReceipts:
    def test_never_installed(self, tmp_path):
        pkg_dir = git_repo(tmp_path / "hello")
        assert read_receipt(pkg_dir) == ""
        assert is_behind(pkg_dir) is True

    def test_written_receipt_is_current(self, tmp_path):
        pkg_dir = git_repo(tmp_path / "hello")
        write_receipt(pkg_dir)
        assert read_receipt(pkg_dir) == get_head_commit(pkg_dir)
        assert is_behind(pkg_dir) is False

    def test_not_a_repository(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
        plain = tmp_path / "plain"
        plain.mkdir()
        assert get_head_commit(plain) == NOT_A_GIT_REPOSITORY
