from pathlib import Path
import textwrap

import pytest
from pydantic import ValidationError

from archconfigs.config.loader import expand_env_vars, load_profile


def test_packaged_profile_loads():
    profile = load_profile()
    assert profile.hardware_model == "XPS 15 9500"
    assert len(profile.hyprland.packages) == 41
    assert profile.hyprland.nvidia_modules[0] == "i915"
    assert [d.name for d in profile.pool.datasets][:2] == ["ROOT", "ROOT/arch"]
    assert profile.archzfs.server == "https://archzfs.com/$repo/$arch"


def test_override_merges_over_packaged_profile(tmp_path: Path):
    f = tmp_path / "override.yaml"
    f.write_text(textwrap.dedent("""
        pool:
          options:
            ashift: "13"
        hyprland:
          packages: [nvidia-open-dkms]
    """))
    profile = load_profile(f)

    # nested dicts merge key by key
    assert profile.pool.options == {"ashift": "13", "autotrim": "on"}
    assert profile.pool.fs_options["compression"] == "zstd"
    # lists are replaced
    assert profile.hyprland.packages == ["nvidia-open-dkms"]
    assert profile.hyprland.nvidia_modules[0] == "i915"


def test_env_placeholders_expand_but_pacman_variables_stay(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("ARCHZFS_MIRROR", "https://mirror.example/archzfs")
    f = tmp_path / "override.yaml"
    f.write_text('archzfs:\n  server: "${ARCHZFS_MIRROR}/$repo/$arch"\n')

    profile = load_profile(f)
    assert profile.archzfs.server == "https://mirror.example/archzfs/$repo/$arch"


def test_unknown_placeholder_is_left_verbatim(monkeypatch):
    monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
    assert expand_env_vars("a ${NOT_SET_ANYWHERE} b") == "a ${NOT_SET_ANYWHERE} b"


def test_missing_override_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_profile(tmp_path / "nope.yaml")


def test_unknown_keys_are_rejected(tmp_path: Path):
    f = tmp_path / "override.yaml"
    f.write_text("hyprland:\n  pakages: [typo]\n")
    with pytest.raises(ValidationError):
        load_profile(f)
