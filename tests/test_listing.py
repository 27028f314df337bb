"""Tests for the directory-walk listing engine."""

import os

import pytest

from dirstore.storage.listing import relative_key, walk_objects


@pytest.fixture
def bucket_dir(tmp_path):
    """A bucket directory with a small nested tree."""
    root = tmp_path / "bucket"
    (root / "dir" / "sub").mkdir(parents=True)
    (root / "empty-dir").mkdir()
    (root / "top.txt").write_bytes(b"top")
    (root / "dir" / "a.txt").write_bytes(b"aaaa")
    (root / "dir" / "sub" / "deep.bin").write_bytes(b"d" * 10)
    (root / "dirt.txt").write_bytes(b"x")
    return root


class TestWalkObjects:
    """Tests for walk_objects()."""

    def test_lists_every_file_as_forward_slash_key(self, bucket_dir):
        keys = {o.key for o in walk_objects(bucket_dir)}
        assert keys == {"top.txt", "dirt.txt", "dir/a.txt", "dir/sub/deep.bin"}

    def test_directories_are_not_objects(self, bucket_dir):
        keys = [o.key for o in walk_objects(bucket_dir)]
        assert "empty-dir" not in keys
        assert "dir" not in keys
        assert not any(k.endswith("/") for k in keys)

    def test_sizes_and_timestamps(self, bucket_dir):
        objects = {o.key: o for o in walk_objects(bucket_dir)}
        assert objects["dir/a.txt"].size == 4
        assert objects["dir/sub/deep.bin"].size == 10
        assert objects["top.txt"].last_modified.tzinfo is not None
        assert objects["top.txt"].etag is None

    def test_prefix_is_plain_string_match(self, bucket_dir):
        """'dir' matches both the directory contents and 'dirt.txt'."""
        keys = {o.key for o in walk_objects(bucket_dir, "dir")}
        assert keys == {"dir/a.txt", "dir/sub/deep.bin", "dirt.txt"}

    def test_prefix_with_slash(self, bucket_dir):
        keys = [o.key for o in walk_objects(bucket_dir, "dir/")]
        assert sorted(keys) == ["dir/a.txt", "dir/sub/deep.bin"]

    def test_prefix_can_split_a_segment(self, bucket_dir):
        keys = [o.key for o in walk_objects(bucket_dir, "dir/su")]
        assert keys == ["dir/sub/deep.bin"]

    def test_prefix_without_match(self, bucket_dir):
        assert walk_objects(bucket_dir, "nope") == []

    def test_empty_bucket(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert walk_objects(empty) == []

    def test_order_is_stable(self, bucket_dir):
        first = [o.key for o in walk_objects(bucket_dir)]
        second = [o.key for o in walk_objects(bucket_dir)]
        assert first == second

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            walk_objects(tmp_path / "missing")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_dangling_symlink_is_skipped(self, bucket_dir):
        os.symlink(bucket_dir / "gone", bucket_dir / "dangling")
        keys = {o.key for o in walk_objects(bucket_dir)}
        assert "dangling" not in keys


class TestRelativeKey:
    def test_nested(self, tmp_path):
        assert relative_key(tmp_path, tmp_path / "a" / "b.txt") == "a/b.txt"
