"""Tests for the local filesystem driver."""

import asyncio
import zipfile

import pytest

from fsdriver.local import LocalFilesystem
from fsdriver.utils import archive
from fsdriver.utils.entry import FSEntry, normalize_path
from fsdriver.utils.errors import (
    AlreadyExistsError,
    DirectoryExpectedError,
    EncryptedArchiveError,
    InvalidArchiveError,
    IOFailureError,
    NotFoundError,
    OutOfMemoryError,
    SplitArchiveError,
    UnsupportedArchiveError,
)
from fsdriver.utils.properties import UNKNOWN
from fsdriver.utils.text import LineBreak, TextParams

from tests.test_archive import make_zip, mark_encrypted, mark_split


def run(coro):
    return asyncio.run(coro)


async def collect(iterator):
    return [entry async for entry in iterator]


class TestListing:

    def test_list_default(self, fs, root):
        (root / "b.txt").write_text("b")
        (root / "a").mkdir()
        tree = run(fs.list_default())
        assert tree.root.path == normalize_path(str(root))
        assert [child.name for child in tree.children] == ["a", "b.txt"]
        assert tree.children[0].is_dir

    def test_list_children_without_parent_uses_root(self, fs, root):
        (root / "a.txt").write_text("a")
        assert [c.name for c in run(fs.list_children(None)).children] == ["a.txt"]

    def test_empty_directory(self, fs, root):
        (root / "empty").mkdir()
        tree = run(fs.list_children(FSEntry.of(str(root / "empty"), "dir")))
        assert tree.children == []

    def test_not_a_directory(self, fs, root):
        (root / "a.txt").write_text("a")
        with pytest.raises(DirectoryExpectedError) as exc_info:
            run(fs.list_children(FSEntry.of(str(root / "a.txt"))))
        assert exc_info.value.path == normalize_path(str(root / "a.txt"))

    def test_default_location_is_not_a_directory(self, root):
        (root / "a.txt").write_text("a")
        with pytest.raises(DirectoryExpectedError):
            run(LocalFilesystem(str(root / "a.txt")).list_default())


class TestCreate:

    def test_create_twice(self, fs, root):
        entry = FSEntry.of(str(root / "a.txt"))
        created = run(fs.create(entry))
        assert created.type == "file"
        assert (root / "a.txt").is_file()
        with pytest.raises(AlreadyExistsError):
            run(fs.create(entry))

    def test_create_file_with_missing_parents(self, fs, root):
        run(fs.create(FSEntry.of(str(root / "x" / "y" / "a.txt"))))
        assert (root / "x" / "y" / "a.txt").is_file()

    def test_create_directory_chain(self, fs, root):
        created = run(fs.create(FSEntry.of(str(root / "x" / "y"), "dir")))
        assert created.is_dir
        assert (root / "x" / "y").is_dir()


class TestRename:

    def test_round_trip(self, fs, root):
        (root / "a.txt").write_text("content")
        original = FSEntry.from_path(str(root / "a.txt"))
        renamed = run(fs.rename(original, "b.txt"))
        assert renamed.name == "b.txt"
        assert not (root / "a.txt").exists()
        restored = run(fs.rename(renamed, original.name))
        assert restored.path == original.path
        assert restored.type == original.type
        assert restored.size == original.size

    def test_missing_source(self, fs, root):
        with pytest.raises(NotFoundError):
            run(fs.rename(FSEntry.of(str(root / "a.txt")), "b.txt"))

    def test_existing_sibling(self, fs, root):
        (root / "a.txt").write_text("a")
        (root / "b.txt").write_text("b")
        with pytest.raises(AlreadyExistsError) as exc_info:
            run(fs.rename(FSEntry.of(str(root / "a.txt")), "b.txt"))
        assert exc_info.value.path.endswith("/b.txt")
        assert (root / "a.txt").read_text() == "a"

    @pytest.mark.parametrize("new_name", ["", ".", "..", "../b.txt", "dir/b.txt"])
    def test_invalid_name(self, fs, root, new_name):
        (root / "a.txt").write_text("a")
        with pytest.raises(IOFailureError) as exc_info:
            run(fs.rename(FSEntry.of(str(root / "a.txt")), new_name))
        assert exc_info.value.path == normalize_path(str(root / "a.txt"))
        assert isinstance(exc_info.value.cause, ValueError)
        assert (root / "a.txt").exists()


class TestDelete:

    def test_delete_then_properties(self, fs, root):
        (root / "a.txt").write_text("a")
        entry = FSEntry.of(str(root / "a.txt"))
        parent = run(fs.delete(entry))
        assert parent.path == normalize_path(str(root))
        with pytest.raises(NotFoundError):
            run(fs.properties_of(entry))

    def test_recursive(self, fs, root):
        (root / "dir" / "sub").mkdir(parents=True)
        (root / "dir" / "sub" / "a.txt").write_text("a")
        run(fs.delete(FSEntry.of(str(root / "dir"), "dir")))
        assert not (root / "dir").exists()

    def test_missing(self, fs, root):
        with pytest.raises(NotFoundError):
            run(fs.delete(FSEntry.of(str(root / "missing"))))


class TestCopy:

    def test_copy_file(self, fs, root):
        (root / "a.txt").write_text("a")
        (root / "dest").mkdir()
        copied = run(fs.copy(FSEntry.of(str(root / "a.txt")), FSEntry.of(str(root / "dest"), "dir")))
        assert copied.path == normalize_path(str(root / "dest" / "a.txt"))
        assert (root / "dest" / "a.txt").read_text() == "a"
        assert (root / "a.txt").exists()

    def test_copy_directory(self, fs, root):
        (root / "src" / "sub").mkdir(parents=True)
        (root / "src" / "sub" / "a.txt").write_text("a")
        (root / "dest").mkdir()
        run(fs.copy(FSEntry.of(str(root / "src"), "dir"), FSEntry.of(str(root / "dest"), "dir")))
        assert (root / "dest" / "src" / "sub" / "a.txt").read_text() == "a"

    def test_never_overwrites(self, fs, root):
        (root / "a.txt").write_text("new")
        (root / "dest").mkdir()
        (root / "dest" / "a.txt").write_text("old")
        with pytest.raises(AlreadyExistsError):
            run(fs.copy(FSEntry.of(str(root / "a.txt")), FSEntry.of(str(root / "dest"), "dir")))
        assert (root / "dest" / "a.txt").read_text() == "old"

    def test_missing_source(self, fs, root):
        (root / "dest").mkdir()
        with pytest.raises(NotFoundError):
            run(fs.copy(FSEntry.of(str(root / "a.txt")), FSEntry.of(str(root / "dest"), "dir")))

    def test_missing_destination(self, fs, root):
        (root / "a.txt").write_text("a")
        with pytest.raises(NotFoundError) as exc_info:
            run(fs.copy(FSEntry.of(str(root / "a.txt")), FSEntry.of(str(root / "dest"), "dir")))
        assert exc_info.value.path.endswith("/dest")

    def test_into_itself(self, fs, root):
        (root / "src").mkdir()
        with pytest.raises(IOFailureError):
            run(fs.copy(FSEntry.of(str(root / "src"), "dir"), FSEntry.of(str(root / "src"), "dir")))


class TestProperties:

    def test_text_file(self, fs, root):
        (root / "a.txt").write_bytes(b"a b\n\ncd\n")
        properties = run(fs.properties_of(FSEntry.of(str(root / "a.txt"))))
        assert properties.line_count == 3
        assert properties.word_count == 4
        assert properties.char_count == 8

    def test_directory(self, fs, root):
        properties = run(fs.properties_of(FSEntry.of(str(root), "dir")))
        assert properties.line_count == UNKNOWN


class TestTextIO:

    def test_crlf_save_load_resave(self, fs, root):
        entry = FSEntry.of(str(root / "a.txt"))
        params = TextParams(charset="utf-8", detect_charset=False, line_break=LineBreak.CRLF)
        run(fs.save(entry, "one\ntwo\rthree\r\nfour", params))
        first = (root / "a.txt").read_bytes()
        loaded = run(fs.load(entry, params))
        assert loaded == "one\r\ntwo\r\nthree\r\nfour"
        run(fs.save(entry, loaded, params))
        assert (root / "a.txt").read_bytes() == first

    def test_save_creates_parents(self, fs, root):
        run(fs.save(FSEntry.of(str(root / "x" / "y" / "a.txt")), "text"))
        assert (root / "x" / "y" / "a.txt").read_text() == "text"

    def test_save_uses_configured_defaults(self, root):
        fs = LocalFilesystem(str(root), charset="utf-16", line_break="CR")
        run(fs.save(FSEntry.of(str(root / "a.txt")), "a\nb"))
        assert (root / "a.txt").read_bytes() == "a\rb".encode("utf-16")

    def test_load_detects_charset(self, fs, root):
        source = "Съешь же ещё этих мягких французских булок, да выпей чаю. " * 10
        (root / "a.txt").write_bytes(source.encode("utf-8"))
        loaded = run(fs.load(FSEntry.of(str(root / "a.txt")), TextParams(charset="latin-1", detect_charset=True)))
        assert loaded == source

    def test_load_detects_short_western_text(self, fs, root):
        (root / "a.txt").write_bytes("naïve café".encode("cp1252"))
        loaded = run(fs.load(FSEntry.of(str(root / "a.txt")), TextParams("cp1252", True, LineBreak.LF)))
        assert loaded == "naïve café"

    def test_load_missing(self, fs, root):
        with pytest.raises(NotFoundError):
            run(fs.load(FSEntry.of(str(root / "a.txt"))))

    def test_load_too_large(self, root):
        (root / "a.txt").write_text("x" * 100)
        fs = LocalFilesystem(str(root), max_load_size=10)
        with pytest.raises(OutOfMemoryError) as exc_info:
            run(fs.load(FSEntry.of(str(root / "a.txt"))))
        assert exc_info.value.path == normalize_path(str(root / "a.txt"))

    def test_load_undecodable(self, fs, root):
        (root / "a.txt").write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(IOFailureError):
            run(fs.load(FSEntry.of(str(root / "a.txt")), TextParams(charset="utf-8")))

    def test_load_directory_is_io_failure(self, fs, root):
        (root / "dir").mkdir()
        with pytest.raises(IOFailureError) as exc_info:
            run(fs.load(FSEntry.of(str(root / "dir"), "dir")))
        assert isinstance(exc_info.value.cause, OSError)


class TestCompress:

    def test_fail_fast_on_missing_source(self, fs, root):
        (root / "a.txt").write_text("a")
        (root / "b.txt").write_text("b")
        sources = [FSEntry.of(str(root / name)) for name in ("a.txt", "missing.txt", "b.txt")]
        emitted = []

        async def consume():
            async for entry in fs.compress(sources, FSEntry.of(str(root), "dir"), "out.zip"):
                emitted.append(entry)

        with pytest.raises(NotFoundError) as exc_info:
            run(consume())
        assert [entry.name for entry in emitted] == ["a.txt"]
        assert exc_info.value.path == normalize_path(str(root / "missing.txt"))
        with zipfile.ZipFile(root / "out.zip") as zf:
            assert zf.namelist() == ["a.txt"]

    def test_files_and_directories(self, fs, root):
        (root / "a.txt").write_text("a")
        (root / "dir").mkdir()
        (root / "dir" / "b.txt").write_text("b")
        sources = [FSEntry.of(str(root / "a.txt")), FSEntry.of(str(root / "dir"), "dir")]
        emitted = run(collect(fs.compress(sources, FSEntry.of(str(root), "dir"), "out.zip")))
        assert emitted == sources
        with zipfile.ZipFile(root / "out.zip") as zf:
            assert sorted(zf.namelist()) == ["a.txt", "dir/", "dir/b.txt"]

    def test_existing_archive(self, fs, root):
        (root / "a.txt").write_text("a")
        (root / "out.zip").write_bytes(b"old")
        with pytest.raises(AlreadyExistsError):
            run(collect(fs.compress([FSEntry.of(str(root / "a.txt"))], FSEntry.of(str(root), "dir"), "out.zip")))
        assert (root / "out.zip").read_bytes() == b"old"

    def test_closing_stops_processing(self, fs, root):
        for name in ("a.txt", "b.txt"):
            (root / name).write_text(name)
        sources = [FSEntry.of(str(root / "a.txt")), FSEntry.of(str(root / "b.txt"))]

        async def take_first():
            progress = fs.compress(sources, FSEntry.of(str(root), "dir"), "out.zip")
            first = await progress.__anext__()
            await progress.aclose()
            return first

        assert run(take_first()).name == "a.txt"
        with zipfile.ZipFile(root / "out.zip") as zf:
            assert zf.namelist() == ["a.txt"]

    def test_archive_inside_compressed_directory(self, fs, root):
        (root / "a.txt").write_text("a")
        run(collect(fs.compress([FSEntry.of(str(root), "dir")], FSEntry.of(str(root), "dir"), "out.zip")))
        with zipfile.ZipFile(root / "out.zip") as zf:
            assert sorted(zf.namelist()) == [f"{root.name}/", f"{root.name}/a.txt"]

    def test_close_failure_keeps_original_error(self, fs, root, monkeypatch):
        close = archive.ArchiveWriter.close

        def failing_close(writer):
            close(writer)
            raise OSError("disk full")

        monkeypatch.setattr(archive.ArchiveWriter, "close", failing_close)
        sources = [FSEntry.of(str(root / "missing.txt"))]
        with pytest.raises(NotFoundError):
            run(collect(fs.compress(sources, FSEntry.of(str(root), "dir"), "out.zip")))

    def test_close_failure_is_io_failure(self, fs, root, monkeypatch):
        close = archive.ArchiveWriter.close

        def failing_close(writer):
            close(writer)
            raise OSError("disk full")

        monkeypatch.setattr(archive.ArchiveWriter, "close", failing_close)
        (root / "a.txt").write_text("a")
        with pytest.raises(IOFailureError) as exc_info:
            run(collect(fs.compress([FSEntry.of(str(root / "a.txt"))], FSEntry.of(str(root), "dir"), "out.zip")))
        assert exc_info.value.path == normalize_path(str(root / "out.zip"))


class TestDecompress:

    def test_extracts(self, fs, root):
        make_zip(root / "a.zip", {"x/y.txt": "y", "z.txt": "z"})
        (root / "out").mkdir()
        source = FSEntry.of(str(root / "a.zip"))
        assert run(fs.decompress(source, FSEntry.of(str(root / "out"), "dir"))) == source
        assert (root / "out" / "x" / "y.txt").read_text() == "y"
        assert (root / "out" / "z.txt").read_text() == "z"

    @pytest.mark.parametrize("exists", [True, False])
    def test_unsupported_suffix(self, fs, root, exists):
        if exists:
            make_zip(root / "a.rar", {"a.txt": "a"})
        with pytest.raises(UnsupportedArchiveError):
            run(fs.decompress(FSEntry.of(str(root / "a.rar")), FSEntry.of(str(root), "dir")))

    def test_suffix_is_case_insensitive(self, fs, root):
        make_zip(root / "A.ZIP", {"a.txt": "a"})
        (root / "out").mkdir()
        run(fs.decompress(FSEntry.of(str(root / "A.ZIP")), FSEntry.of(str(root / "out"), "dir")))
        assert (root / "out" / "a.txt").exists()

    def test_missing(self, fs, root):
        with pytest.raises(NotFoundError):
            run(fs.decompress(FSEntry.of(str(root / "a.zip")), FSEntry.of(str(root), "dir")))

    def test_encrypted(self, fs, root):
        make_zip(root / "a.zip", {"a.txt": "a"})
        mark_encrypted(root / "a.zip")
        with pytest.raises(EncryptedArchiveError):
            run(fs.decompress(FSEntry.of(str(root / "a.zip")), FSEntry.of(str(root), "dir")))

    def test_encryption_is_reported_before_split(self, fs, root):
        make_zip(root / "a.zip", {"a.txt": "a"})
        mark_encrypted(root / "a.zip")
        (root / "a.z01").write_bytes(b"")
        with pytest.raises(EncryptedArchiveError):
            run(fs.decompress(FSEntry.of(str(root / "a.zip")), FSEntry.of(str(root), "dir")))

    def test_split(self, fs, root):
        make_zip(root / "a.zip", {"a.txt": "a"})
        mark_split(root / "a.zip")
        with pytest.raises(SplitArchiveError):
            run(fs.decompress(FSEntry.of(str(root / "a.zip")), FSEntry.of(str(root), "dir")))

    def test_invalid(self, fs, root):
        (root / "a.zip").write_bytes(b"not a zip")
        with pytest.raises(InvalidArchiveError):
            run(fs.decompress(FSEntry.of(str(root / "a.zip")), FSEntry.of(str(root), "dir")))

    def test_directory_with_archive_suffix(self, fs, root):
        (root / "d.zip").mkdir()
        with pytest.raises(InvalidArchiveError):
            run(fs.decompress(FSEntry.of(str(root / "d.zip"), "dir"), FSEntry.of(str(root), "dir")))


def test_from_yaml(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(f"root: {tmp_path}\nmax_load_size: 10\ncharset: cp1251\nline_break: CRLF\n")
    fs = LocalFilesystem.from_yaml(str(config))
    assert fs.root == normalize_path(str(tmp_path))
    assert fs.max_load_size == 10
    assert fs.text_params == TextParams("cp1251", False, LineBreak.CRLF)


def test_connect(fs):
    async def connect():
        async with fs.connect() as connection:
            return connection

    assert run(connect()) is fs
