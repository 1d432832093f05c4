from pathlib import Path

from archconfigs.system.bootloader import BootEntry, BootEntryStore


def _store(tmp_path: Path) -> BootEntryStore:
    entries = tmp_path / "boot/loader/entries"
    entries.mkdir(parents=True)
    (entries / "arch.conf").write_text("title Arch\nlinux /vmlinuz-linux\noptions root=UUID=1 rw\n")
    (entries / "fallback.conf").write_text("title Fallback\nlinux /vmlinuz-linux\n")
    (entries / "arch.conf.backup.20260101000000").write_text("stale")
    return BootEntryStore(tmp_path)


def test_entries_only_lists_conf_files(tmp_path: Path):
    names = [e.name for e in _store(tmp_path).entries()]
    assert names == ["arch.conf", "fallback.conf"]


def test_options_edit_keeps_other_lines(tmp_path: Path):
    store = _store(tmp_path)
    entry = store.entries()[0]
    entry.set_options(entry.options + ["quiet"])
    store.save(entry)
    assert (tmp_path / "boot/loader/entries/arch.conf").read_text() == (
        "title Arch\nlinux /vmlinuz-linux\noptions root=UUID=1 rw quiet\n"
    )


def test_entry_without_options():
    entry = BootEntry.parse(Path("x.conf"), "title X\n")
    assert not entry.has_options
    assert entry.options == []


def test_kernels_and_microcode(tmp_path: Path):
    store = _store(tmp_path)
    (tmp_path / "boot/vmlinuz-linux-lts").write_bytes(b"")
    (tmp_path / "boot/amd-ucode.img").write_bytes(b"")
    assert store.installed_kernels(["linux", "linux-zen", "linux-lts"]) == ["linux-lts"]
    assert store.microcode_images(["intel-ucode", "amd-ucode"]) == ["amd-ucode.img"]


def test_default_entry_round_trip(tmp_path: Path):
    store = _store(tmp_path)
    assert store.default_entry() is None
    store.loader_conf.write_text("timeout 3")
    store.set_default("linux-zfs.conf")
    assert store.loader_conf.read_text() == "timeout 3\ndefault linux-zfs.conf\n"
    assert store.default_entry() == "linux-zfs.conf"
