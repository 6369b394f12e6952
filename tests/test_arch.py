"""Tests for architecture-specific variable merging."""

import platform

import pytest

from mpr_manager.parsers.arch import host_architecture, merge_arch_variables


class TestMergeArchVariables:
    def test_suffixed_values_appended(self):
        merged = merge_arch_variables({"foo": ["1"], "foo_amd64": ["2"]}, "amd64")
        assert merged["foo"] == ["1", "2"]

    def test_other_arch_not_merged(self):
        merged = merge_arch_variables(
            {"foo": ["1"], "foo_amd64": ["2"], "foo_arm64": ["9"]}, "amd64"
        )
        assert merged["foo"] == ["1", "2"]
        assert merged["foo_arm64"] == ["9"]

    def test_base_created_when_missing(self):
        merged = merge_arch_variables({"source_arm64": ["a.tar.gz", "b.tar.gz"]}, "arm64")
        assert merged["source"] == ["a.tar.gz", "b.tar.gz"]

    def test_suffixed_entry_kept(self):
        merged = merge_arch_variables({"foo_amd64": ["2"]}, "amd64")
        assert merged["foo_amd64"] == ["2"]

    def test_no_suffixed_names_passes_through(self):
        variables = {"pkgname": ["hello"], "arch": ["amd64", "i386"]}
        assert merge_arch_variables(variables, "amd64") == variables

    def test_input_not_mutated(self):
        variables = {"foo": ["1"], "foo_amd64": ["2"]}
        merge_arch_variables(variables, "amd64")
        assert variables == {"foo": ["1"], "foo_amd64": ["2"]}


class TestHostArchitecture:
    @pytest.mark.parametrize(
        "machine, expected",
        [("x86_64", "amd64"), ("aarch64", "arm64"), ("i686", "i386"), ("armv7l", "armhf")],
    )
    def test_debian_names(self, monkeypatch, machine, expected):
        monkeypatch.setattr(platform, "machine", lambda: machine)
        assert host_architecture() == expected

    def test_unknown_machine_passes_through(self, monkeypatch):
        monkeypatch.setattr(platform, "machine", lambda: "Mips64")
        assert host_architecture() == "mips64"
