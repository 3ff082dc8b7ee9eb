"""Tests for the snapshot differ."""

from bindery.snapshot import FileInfo, compare_snapshots


def test_identical_snapshots_produce_empty_diff():
    snap = {"a.epub": "h1", "b/c.epub": "h2"}
    diff = compare_snapshots(snap, dict(snap))
    assert diff.is_empty
    assert diff.added == {} and diff.removed == {} and diff.moved == {}


def test_first_run_everything_added():
    new = {"a.epub": "h1", "b.pdf": "h2"}
    diff = compare_snapshots({}, new)
    assert diff.added == {
        "h1": FileInfo(hash="h1", path="a.epub"),
        "h2": FileInfo(hash="h2", path="b.pdf"),
    }
    assert diff.removed == {}
    assert diff.moved == {}
    assert diff.added_paths() == ["a.epub", "b.pdf"]


def test_everything_removed():
    diff = compare_snapshots({"a.epub": "h1"}, {})
    assert diff.removed == {"h1": FileInfo(hash="h1", path="a.epub")}
    assert diff.added == {}


def test_rename_is_reported_as_move():
    diff = compare_snapshots({"old/name.epub": "h1"}, {"new/name.epub": "h1"})
    assert diff.moved == {"h1": FileInfo(hash="h1", path="old/name.epub", new_path="new/name.epub")}
    assert diff.added == {}
    assert diff.removed == {}


def test_content_change_at_same_path_is_invisible():
    """A changed file at an unchanged path is not reported (known limitation)."""
    diff = compare_snapshots({"a.epub": "h1"}, {"a.epub": "h2"})
    assert diff.is_empty


def test_mixed_changes():
    old = {"a.epub": "h1", "b.epub": "h2", "c.epub": "h3"}
    new = {"a.epub": "h1", "moved/b.epub": "h2", "d.epub": "h4"}
    diff = compare_snapshots(old, new)

    assert set(diff.added) == {"h4"}
    assert set(diff.removed) == {"h3"}
    assert set(diff.moved) == {"h2"}
    assert diff.moved["h2"].path == "b.epub"
    assert diff.moved["h2"].new_path == "moved/b.epub"


def test_keys_are_disjoint_across_collections():
    old = {"x": "h1", "y": "h2", "z": "h3"}
    new = {"x2": "h1", "w": "h4", "v": "h3"}
    diff = compare_snapshots(old, new)

    added, removed, moved = set(diff.added), set(diff.removed), set(diff.moved)
    assert not (added & removed)
    assert not (added & moved)
    assert not (removed & moved)


def test_duplicate_content_pairs_smallest_paths():
    """With two copies of the same content the sorted-first paths pair up."""
    old = {"b.epub": "h1", "a.epub": "h1"}
    new = {"z.epub": "h1", "y.epub": "h1"}
    diff = compare_snapshots(old, new)

    assert diff.moved == {"h1": FileInfo(hash="h1", path="a.epub", new_path="y.epub")}
    assert diff.added == {}
    assert diff.removed == {}


def test_new_copy_of_existing_content_is_not_reported():
    old = {"a.epub": "h1"}
    new = {"a.epub": "h1", "copy.epub": "h1"}
    assert compare_snapshots(old, new).is_empty


def test_rename_plus_extra_copy_reports_only_the_move():
    old = {"a.epub": "h1", "b.epub": "h2"}
    new = {"b.epub": "h2", "c.epub": "h1", "d.epub": "h1"}
    diff = compare_snapshots(old, new)

    assert diff.moved == {"h1": FileInfo(hash="h1", path="a.epub", new_path="c.epub")}
    assert diff.added == {}
    assert diff.removed == {}


def test_diff_is_deterministic():
    old = {f"old/{i}.epub": f"h{i % 3}" for i in range(10)}
    new = {f"new/{i}.epub": f"h{i % 4}" for i in range(10)}
    first = compare_snapshots(old, new)
    second = compare_snapshots(dict(reversed(list(old.items()))), dict(reversed(list(new.items()))))
    assert first == second


def test_end_to_end_scenario():
    """Add, delete, rename and keep in one comparison."""
    old = {
        "Books/Dune.epub": "dune",
        "Books/Emma.epub": "emma",
        "Books/Iliad.epub": "iliad",
    }
    new = {
        "Books/Dune.epub": "dune",
        "Classics/Iliad.epub": "iliad",
        "Books/Ulysses.epub": "ulysses",
    }
    diff = compare_snapshots(old, new)

    assert diff.added == {"ulysses": FileInfo(hash="ulysses", path="Books/Ulysses.epub")}
    assert diff.removed == {"emma": FileInfo(hash="emma", path="Books/Emma.epub")}
    assert diff.moved == {
        "iliad": FileInfo(hash="iliad", path="Books/Iliad.epub", new_path="Classics/Iliad.epub")
    }
