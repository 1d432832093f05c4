from archconfigs.probes.tokens import insert_before, is_before, parse_array, prepend, replace_array, starts_with


CONF = """\
# vim:set ft=sh
MODULES=()
#HOOKS=(base udev)
HOOKS=(base udev autodetect modconf block filesystems keyboard fsck)  # default
"""


def test_parse_array_ignores_comments_and_keeps_trailer():
    arr = parse_array(CONF, "HOOKS")
    assert arr.tokens == ["base", "udev", "autodetect", "modconf", "block", "filesystems", "keyboard", "fsck"]
    assert arr.line_index == 3
    assert arr.trailer == "  # default"


def test_parse_array_quoted_form():
    arr = parse_array('HOOKS="base udev filesystems"\n', "HOOKS")
    assert arr.quoted
    assert replace_array('HOOKS="base udev filesystems"\n', arr, ["base"]) == 'HOOKS="base"\n'


def test_empty_array():
    assert parse_array(CONF, "MODULES").tokens == []
    assert parse_array(CONF, "FILES") is None


def test_insert_before_places_exactly_one():
    assert insert_before(["base", "zfs", "filesystems", "zfs"], "zfs", "filesystems") == ["base", "zfs", "filesystems"]
    assert insert_before(["base", "udev"], "zfs", "filesystems") == ["base", "udev", "zfs"]


def test_is_before():
    assert is_before(["a", "zfs", "filesystems"], "zfs", "filesystems")
    assert not is_before(["zfs", "a", "filesystems"], "zfs", "filesystems")
    assert not is_before(["zfs", "zfs", "filesystems"], "zfs", "filesystems")


def test_prepend_and_starts_with():
    out = prepend(["nvidia", "btrfs"], ["i915", "nvidia"])
    assert out == ["i915", "nvidia", "btrfs"]
    assert starts_with(out, ["i915", "nvidia"])
    assert not starts_with(["nvidia", "i915"], ["i915", "nvidia"])
