"""Tests for decompression, archive expansion, indexing and dataset loading."""

import pytest

from fakes import gz, make_tar, make_zip
from Strata.app import Action, ActionType, Dataset, File
from Strata.config.settings import IngestConfig
from Strata.ingestion import TextIndex, extract_members, gunzip_if_needed, is_archive_file, should_index
from Strata.ingestion.compression import is_gzip_file
from Strata.ingestion.pipeline import ingest_created_file, load_dataset
from Strata.utils.errors import ArchiveError, IngestionError


def dataset_of(ctx, sid="s1", did="d1"):
    return Dataset.from_dict({"id": {"space_id": sid, "item_id": did}, "name": did}, ctx)


class TestCompression:
    """Test name and magic-byte detection."""

    def test_archive_names(self):
        """Test recognized archive suffixes."""
        for name in ("a.zip", "A.ZIP", "b.tar", "c.tgz", "d.tar.gz", "A.TGZ", "LOGS.TAR.GZ", "B.Tar"):
            assert is_archive_file(name)
        for name in ("A.TGZ", "LOGS.TAR.GZ", "E.GZ"):
            assert is_gzip_file(name)
        for name in ("e.gz", "f.txt", "zip.txt"):
            assert not is_archive_file(name)

    def test_gunzip_needs_name_and_magic(self):
        """Test only gzip-named buffers with the gzip header are inflated."""
        packed = gz(b"payload")
        assert gunzip_if_needed("x.gz", packed) == b"payload"
        assert gunzip_if_needed("x.txt", packed) is packed
        assert gunzip_if_needed("x.gz", b"already plain") == b"already plain"

    def test_corrupt_gzip(self):
        """Test a broken gzip body raises an ingestion error."""
        with pytest.raises(IngestionError):
            gunzip_if_needed("x.gz", b"\x1f\x8b\x08broken")

    def test_should_index(self):
        """Test binary-ish names are skipped."""
        assert should_index("a.log")
        assert not should_index("logo.png")
        assert not should_index("x.gz")
        assert should_index("x.gz", skip_extensions=[])


class TestArchives:
    """Test archive member extraction."""

    @pytest.mark.asyncio
    async def test_zip_order(self):
        """Test zip members come out in archive order without directories."""
        data = make_zip({"dir/": b"", "x.txt": b"1", "y.txt": b"22"})
        members = await extract_members("a.zip", data)
        assert [(m.name, m.size) for m in members] == [("x.txt", 1), ("y.txt", 2)]

    @pytest.mark.asyncio
    async def test_tar_skips_dirs_and_empty(self):
        """Test only regular, non-empty tar entries are kept."""
        data = make_tar({"logs/app.log": b"boot", "empty.txt": b""}, directories=("logs",))
        members = await extract_members("t.tar", data)
        assert [m.name for m in members] == ["logs/app.log"]

    @pytest.mark.asyncio
    async def test_gzipped_tar(self):
        """Test a compressed tar is read transparently."""
        data = make_tar({"a.txt": b"alpha"}, compress=True)
        members = await extract_members("t.tgz", data)
        assert members[0].data == b"alpha"

    @pytest.mark.asyncio
    async def test_bad_zip(self):
        """Test unreadable archives raise ArchiveError."""
        with pytest.raises(ArchiveError):
            await extract_members("a.zip", b"not a zip")


class TestTextIndex:
    """Test the inverted text index."""

    def setup_method(self):
        self.index = TextIndex()
        self.index.add("f1", "Error: disk full\nall good\ndisk error again")
        self.index.add("f2", "nothing to see")

    def test_and_search(self):
        """Test every query term must occur in a source."""
        assert self.index.search("disk error") == {"f1": [0, 2]}
        assert self.index.search("disk nothing") == {}

    def test_case_insensitive(self):
        """Test tokens are lowercased."""
        assert self.index.search("ERROR") == {"f1": [0, 2]}

    def test_remove_source(self):
        """Test removing a source drops its postings."""
        self.index.remove_by_source("f1")
        assert self.index.search("disk") == {}
        assert self.index.sources() == ["f2"]

    def test_custom_breaker(self):
        """Test a record separator other than newline."""
        index = TextIndex()
        index.add("f3", "alpha;beta;alpha", breaker=";")
        assert index.search("alpha") == {"f3": [0, 2]}

    def test_copy_is_independent(self):
        """Test mutations of a copy do not leak back."""
        dup = self.index.copy()
        dup.add("f4", "disk")
        assert "f4" in dup
        assert "f4" not in self.index
        assert len(self.index) == 2


class TestLoadDataset:
    """Test the full dataset load pipeline."""

    @pytest.mark.asyncio
    async def test_zip_members_replace_archive(self, ctx, transport):
        """Test an archive becomes its members with synthetic ids."""
        transport.add_file("s1", "d1", "a", "a.zip", make_zip({"x.txt": b"hello world", "y.txt": b"bye"}))
        transport.add_file("s1", "d1", "b", "b.txt", b"plain hello")

        loaded = await dataset_of(ctx).load_content()

        assert [f.itemid() for f in loaded.files] == ["a:0", "a:1", "b"]
        assert [f.name for f in loaded.files] == ["a.zip/x.txt", "a.zip/y.txt", "b.txt"]
        assert [f.itemid() for f in loaded.removed] == ["a"]
        assert loaded.dataset.file_count == 3
        assert await loaded.files[0].raw_content() == b"hello world"
        assert loaded.dataset.search("hello") == {"a:0": [0], "b": [0]}

    @pytest.mark.asyncio
    async def test_tar_and_gzip(self, ctx, transport):
        """Test tar expansion and gzip inflation of plain files."""
        tar = make_tar({"logs/app.log": b"start\nerror here", "empty.txt": b""}, directories=("logs",), compress=True)
        transport.add_file("s1", "d1", "t", "t.tgz", tar)
        transport.add_file("s1", "d1", "g", "server.log.gz", gz(b"line one\nline two"))

        loaded = await dataset_of(ctx).load_content()

        by_id = {f.itemid(): f for f in loaded.files}
        assert set(by_id) == {"t:0", "g"}
        assert by_id["t:0"].name == "t.tgz/logs/app.log"
        assert await by_id["g"].raw_content() == b"line one\nline two"
        assert loaded.index.search("error") == {"t:0": [1]}

    @pytest.mark.asyncio
    async def test_failed_download_is_isolated(self, ctx, transport):
        """Test one failing file does not abort the others."""
        transport.add_file("s1", "d1", "ok", "ok.txt", b"fine")
        transport.add_file("s1", "d1", "bad", "bad.txt", b"never")
        transport.add_file("s1", "d1", "broken", "broken.zip", b"not a zip")
        transport.fail_downloads.add(("s1", "d1", "bad"))

        loaded = await dataset_of(ctx).load_content()

        assert [f.itemid() for f in loaded.files] == ["ok"]
        assert sorted(f.itemid() for f in loaded.failed) == ["bad", "broken"]
        assert loaded.dataset.file_count == 1

    @pytest.mark.asyncio
    async def test_unresolved_annotations_dropped(self, ctx, transport):
        """Test annotations need a file in the reconciled set."""
        transport.add_file("s1", "d1", "a", "a.zip", make_zip({"x.txt": b"x"}))
        transport.add_file("s1", "d1", "b", "b.txt", b"b")
        transport.add_annotation("s1", "d1", "b", "n1", description="kept")
        transport.add_annotation("s1", "d1", "a", "n2", description="archive is gone")
        transport.add_annotation("s1", "d1", "ghost", "n3", description="no such file")

        loaded = await dataset_of(ctx).load_content()

        assert [a.itemid() for a in loaded.annotations] == ["n1"]
        assert list(loaded.annotations_by_file()) == ["b"]

    @pytest.mark.asyncio
    async def test_nested_archive_skipped(self, ctx, transport):
        """Test archives inside archives are not expanded by default."""
        inner = make_zip({"z.txt": b"deep"})
        transport.add_file("s1", "d1", "o", "outer.zip", make_zip({"inner.zip": inner, "c.txt": b"top"}))

        loaded = await dataset_of(ctx).load_content()

        assert [f.name for f in loaded.files] == ["outer.zip/c.txt"]

    @pytest.mark.asyncio
    async def test_nested_archive_expanded_with_depth(self, ctx, transport):
        """Test a deeper limit expands nested archives."""
        inner = make_zip({"z.txt": b"deep"})
        transport.add_file("s1", "d1", "o", "outer.zip", make_zip({"inner.zip": inner, "c.txt": b"top"}))

        loaded = await load_dataset(dataset_of(ctx), IngestConfig(max_archive_depth=2))

        assert [f.name for f in loaded.files] == ["outer.zip/inner.zip/z.txt", "outer.zip/c.txt"]
        assert loaded.files[0].itemid() == "o:0:0"

    @pytest.mark.asyncio
    async def test_held_content_reused(self, ctx, transport):
        """Test plain files already in memory are not downloaded again."""
        record = transport.add_file("s1", "d1", "b", "b.txt", b"server copy")
        File.from_dict(record, ctx).set_raw_content(b"local copy")

        loaded = await dataset_of(ctx).load_content()

        assert transport.downloads == []
        assert await loaded.files[0].raw_content() == b"local copy"

    @pytest.mark.asyncio
    async def test_parse_breaker(self, ctx, transport):
        """Test a file's parse settings choose the line breaker."""
        record = transport.add_file("s1", "d1", "c", "c.csv", b"alpha|beta|alpha")
        record["parse"] = {"breaker": r"\|"}

        loaded = await dataset_of(ctx).load_content()

        assert loaded.index.search("alpha") == {"c": [0, 2]}


class TestCreatedFile:
    """Test folding a freshly uploaded file into its dataset."""

    @pytest.mark.asyncio
    async def test_archive_upload(self, ctx, transport):
        """Test an uploaded archive is replaced by its indexed members."""
        dataset = dataset_of(ctx).copy(file_count=1)
        data = make_zip({"x.txt": b"needle"})
        file = await File.create(ctx, dataset, "up.zip", None, "application/zip", len(data), data)

        ingested = await ingest_created_file(dataset, file)

        assert [f.name for f in ingested.files] == ["up.zip/x.txt"]
        assert ingested.removed == [file]
        assert ingested.dataset.file_count == 2
        assert list(ingested.dataset.search("needle")) == [f"{file.itemid()}:0"]

    @pytest.mark.asyncio
    async def test_archive_never_stored(self, ctx):
        """Test archive-named files are refused by the file collection."""
        archive = File(id={"space_id": "s1", "dataset_id": "d1", "item_id": "a"}, name="a.zip")
        plain = File(id={"space_id": "s1", "dataset_id": "d1", "item_id": "b"}, name="b.txt")
        ctx.dispatch(Action(ActionType.LOAD, [archive, plain]))
        assert [f.itemid() for f in ctx.store().files()] == ["b"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
