"""
Tests for the package and environment use cases.
"""

import pytest

from devbox.core.errors import ConfigError, StateError
from devbox.core.models.config import BoxConfig, PackageSpec, TemplateSpec
from devbox.core.models.package import PackageRecord
from devbox.core.use_cases.environment import project_env, render_templates
from devbox.core.use_cases.packages import (
    cache_entries,
    clean_cache,
    install_package,
    list_packages,
    package_env,
    remove_package,
    state_store,
    validate_state,
)

from tests.helpers import SDK_MEMBERS, SDK_RULES, make_settings, make_tarball


def _sdk(archive, version="1.0"):
    return PackageSpec(
        name="sdk", version=version, url=str(archive),
        source_kind="file", rules=SDK_RULES, description="Demo SDK",
    )


@pytest.fixture
def archive(tmp_path):
    return make_tarball(tmp_path / "src" / "sdk.tar.gz", SDK_MEMBERS)


@pytest.fixture
def box(tmp_path, archive):
    """Settings for a project declaring one package."""
    config = BoxConfig(
        name="demo",
        env={"CC": "{{SDK_BIN}}/cc", "OUT": "{{PROJECT_ROOT}}/out"},
        packages=[_sdk(archive)],
        templates=[TemplateSpec(source="Makefile.in", target="build/Makefile")],
    )
    return make_settings(tmp_path, config=config)


class TestInstall:
    def test_install_records_state(self, box):
        result = install_package(box, "sdk")
        assert result.action == "installed"

        record = state_store(box).get("sdk")
        assert record.installed
        assert record.version == "1.0"
        assert "tools/sdk/bin/cc" in record.files
        assert record.env["SDK_BIN"] == str((box.project_root / "tools/sdk/bin").resolve())
        assert (box.project_root / "tools/sdk/bin/cc").is_file()

    def test_same_version_skipped_non_interactive(self, box):
        install_package(box, "sdk")
        assert install_package(box, "sdk").action == "skipped"

    def test_force_reinstalls(self, box):
        install_package(box, "sdk")
        (box.project_root / "tools/sdk/bin/cc").unlink()
        assert install_package(box, "sdk", force=True).action == "installed"
        assert (box.project_root / "tools/sdk/bin/cc").is_file()

    def test_reinstall_chosen(self, box, monkeypatch):
        install_package(box, "sdk")
        monkeypatch.setattr("devbox.core.use_cases.packages.choose_letter", lambda *a, **k: "r")
        assert install_package(box, "sdk").action == "reinstalled"

    def test_new_version_upgrades(self, box, tmp_path, archive):
        install_package(box, "sdk")
        box.config.packages[0] = _sdk(archive, version="2.0")
        assert install_package(box, "sdk").action == "upgraded"
        assert state_store(box).get("sdk").version == "2.0"

    def test_undeclared(self, box):
        with pytest.raises(ConfigError, match="not declared"):
            install_package(box, "nope")

    def test_no_config(self, tmp_path):
        with pytest.raises(ConfigError, match="devbox init"):
            install_package(make_settings(tmp_path), "sdk")

    def test_download_cached(self, box):
        install_package(box, "sdk")
        assert [p.name for p in cache_entries(box)] == ["sdk-1.0.tar.gz"]
        assert clean_cache(box) == 1
        assert cache_entries(box) == []


class TestRemove:
    def test_remove_deletes_files(self, box):
        install_package(box, "sdk")
        (box.project_root / "tools" / "keep.txt").write_text("mine")

        remove_package(box, "sdk")

        assert state_store(box).get("sdk") is None
        assert not (box.project_root / "tools/sdk").exists()
        assert (box.project_root / "tools/keep.txt").is_file()

    def test_keeps_foreign_files_in_recorded_dir(self, box):
        install_package(box, "sdk")
        (box.project_root / "tools/sdk/bin/local-tool").write_text("x")
        remove_package(box, "sdk")
        assert (box.project_root / "tools/sdk/bin/local-tool").is_file()
        assert not (box.project_root / "tools/sdk/bin/cc").exists()

    def test_not_installed(self, box):
        with pytest.raises(StateError):
            remove_package(box, "sdk")


class TestListAndValidate:
    def test_list(self, box):
        [row] = list_packages(box)
        assert (row.name, row.installed, row.declared) == ("sdk", False, True)

        install_package(box, "sdk")
        [row] = list_packages(box)
        assert row.installed and not row.outdated

    def test_list_includes_undeclared_records(self, box):
        state_store(box).set(PackageRecord(name="old", version="0.1", installed=True))
        rows = {r.name: r for r in list_packages(box)}
        assert rows["old"].declared is False

    def test_outdated(self, box, archive):
        install_package(box, "sdk")
        box.config.packages[0] = _sdk(archive, version="2.0")
        [row] = list_packages(box)
        assert row.outdated

    def test_validate_clean(self, box):
        install_package(box, "sdk")
        report = validate_state(box)
        assert report.ok
        assert report.checked == 1
        assert report.warnings == []

    def test_validate_missing_file_and_dir(self, box):
        install_package(box, "sdk")
        (box.project_root / "tools/sdk/config/default.cfg").unlink()
        for f in (box.project_root / "tools/sdk/bin").iterdir():
            f.unlink()
        (box.project_root / "tools/sdk/bin").rmdir()

        report = validate_state(box)
        assert not report.ok
        assert any("recorded file(s) missing" in e for e in report.errors)
        assert any("directory missing: tools/sdk/bin" in e for e in report.errors)

    def test_validate_warnings(self, box):
        store = state_store(box)
        store.set(PackageRecord(name="old", installed=True))
        store.set(PackageRecord(name="sdk", version="0.9", installed=True))
        report = validate_state(box)
        assert report.ok
        assert any("old: recorded but not declared" in w for w in report.warnings)
        assert any("installed 0.9, box.yml wants 1.0" in w for w in report.warnings)


class TestEnvironment:
    def test_layers(self, box):
        install_package(box, "sdk")
        env = project_env(box)
        bin_dir = str((box.project_root / "tools/sdk/bin").resolve())
        assert env["PROJECT_NAME"] == "demo"
        assert env["SDK_BIN"] == bin_dir
        assert env["CC"] == f"{bin_dir}/cc"
        assert env["OUT"] == f"{box.project_root}/out"
        assert package_env(box) == {"SDK_BIN": bin_dir}

    def test_unresolved_left_in_place(self, box):
        assert project_env(box)["CC"] == "{{SDK_BIN}}/cc"

    def test_render_templates(self, box):
        (box.project_root / "Makefile.in").write_text("CC={{CC}}\nHOME_DIR={{HOME}}\nX={{NOPE}}\n")
        [result] = render_templates(box, environ={"HOME": "/home/dev"})

        text = (box.project_root / "build/Makefile").read_text()
        assert "HOME_DIR=/home/dev" in text
        assert "X={{NOPE}}" in text
        assert result.unresolved == ["SDK_BIN", "NOPE"]

    def test_dry_run_writes_nothing(self, box):
        (box.project_root / "Makefile.in").write_text("N={{PROJECT_NAME}}\n")
        [result] = render_templates(box, dry_run=True, environ={})
        assert result.text == "N=demo\n"
        assert not (box.project_root / "build").exists()

    def test_missing_template(self, box):
        with pytest.raises(ConfigError, match="Template not found"):
            render_templates(box, environ={})
