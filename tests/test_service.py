import tempfile
import unittest
import urllib.parse
from pathlib import Path
from unittest.mock import patch

from ebooklib import epub
from lxml import html as lxml_html

from epub_fixtures import PNG_BYTES, container_xml, package_xml, sample_entries, write_epub, write_sample_epub

from folio.archive import open_archive
from folio.errors import (
    ArchiveOpenFailed,
    AssetUnresolvable,
    ChapterIndexOutOfRange,
    ContainerMissing,
    StructureError,
)
from folio.service import asset_url_builder, get_asset, get_chapter, list_chapters


def _image_paths(fragment_html: str) -> list[str]:
    doc = lxml_html.document_fromstring(fragment_html)
    paths = []
    for img in doc.xpath("//img[@src]"):
        query = urllib.parse.urlsplit(img.get("src")).query
        paths.extend(urllib.parse.parse_qs(query).get("path", []))
    return paths


class AssetUrlTests(unittest.TestCase):
    def test_url_embeds_book_id_and_encoded_path(self) -> None:
        url = asset_url_builder("b1")("OPS/img/cover.png")
        self.assertEqual(url, "/api/books/b1/asset?path=OPS%2Fimg%2Fcover.png")

    def test_encoded_path_round_trips(self) -> None:
        build = asset_url_builder("book-7", "https://reader.example/")
        for path in ("OPS/img/my cover+1.png", "OEBPS/图片/封面.jpg", "a&b=c/d#e?.css", "OPS\\odd%20name.png"):
            with self.subTest(path=path):
                url = build(path)
                parts = urllib.parse.urlsplit(url)
                self.assertEqual(parts.path, "/api/books/book-7/asset")
                self.assertEqual(parts.netloc, "reader.example")
                self.assertEqual(urllib.parse.parse_qs(parts.query)["path"], [path])


class EndToEndTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp = Path(self._tmp.name)

    def _scenario_book(self) -> Path:
        entries = {
            "META-INF/container.xml": container_xml("OPS/content.opf"),
            "OPS/content.opf": package_xml(
                [("c1", "chap1.xhtml", "application/xhtml+xml"), ("img1", "img/cover.png", "image/png")],
                ["c1"],
            ),
            "OPS/chap1.xhtml": "<html><body><p><img src=\"img/cover.png\"/></p></body></html>",
            "OPS/img/cover.png": PNG_BYTES,
        }
        return write_epub(self.tmp / "scenario.epub", entries)

    def test_chapter_zero_of_single_chapter_book(self) -> None:
        fragment = get_chapter(self._scenario_book(), "42", 0)
        self.assertEqual(fragment.chapter_index, 0)
        self.assertEqual(fragment.total_chapters, 1)
        self.assertEqual(_image_paths(fragment.html), ["OPS/img/cover.png"])
        self.assertIn("/api/books/42/asset?path=", fragment.html)

    def test_asset_bytes_and_content_type(self) -> None:
        item = get_asset(self._scenario_book(), "OPS/img/cover.png")
        self.assertEqual(item.content, PNG_BYTES)
        self.assertEqual(item.media_type, "image/png")

    def test_rewritten_reference_fetches_the_same_asset(self) -> None:
        epub_file = write_sample_epub(self.tmp / "book.epub")
        fragment = get_chapter(epub_file, "b1", 1)
        [path] = _image_paths(fragment.html)
        self.assertEqual(get_asset(epub_file, path).content, PNG_BYTES)

    def test_total_chapters_excludes_dangling_itemrefs(self) -> None:
        epub_file = write_sample_epub(self.tmp / "book.epub")
        self.assertEqual(list_chapters(epub_file), ["OPS/chap1.xhtml", "OPS/text/chap2.xhtml"])
        self.assertEqual(get_chapter(epub_file, "b1", 1).total_chapters, 2)

    def test_index_equal_to_total_is_out_of_range(self) -> None:
        epub_file = write_sample_epub(self.tmp / "book.epub")
        with self.assertRaises(ChapterIndexOutOfRange):
            get_chapter(epub_file, "b1", 2)

    def test_missing_container_fails_chapter_and_asset(self) -> None:
        entries = sample_entries()
        del entries["META-INF/container.xml"]
        epub_file = write_epub(self.tmp / "broken.epub", entries)
        with self.assertRaises(ContainerMissing):
            get_chapter(epub_file, "b1", 0)
        with patch("folio.service.extract_asset") as extract:
            with self.assertRaises(StructureError):
                get_asset(epub_file, "OPS/img/cover.png")
        extract.assert_not_called()

    def test_missing_archive(self) -> None:
        with self.assertRaises(ArchiveOpenFailed):
            get_chapter(self.tmp / "absent.epub", "b1", 0)
        with self.assertRaises(ArchiveOpenFailed):
            get_asset(self.tmp / "absent.epub", "OPS/img/cover.png")

    def test_empty_asset_path_is_rejected_before_opening(self) -> None:
        with patch("folio.service.open_archive") as opener:
            for path in ("", "   "):
                with self.subTest(path=path):
                    with self.assertRaises(AssetUnresolvable):
                        get_asset(self.tmp / "anything.epub", path)
        opener.assert_not_called()

    def test_handle_is_released_on_every_exit_path(self) -> None:
        epub_file = write_sample_epub(self.tmp / "book.epub")
        for index, expect_error in ((0, False), (5, True)):
            with self.subTest(index=index):
                handle = open_archive(epub_file)
                with patch("folio.service.open_archive", return_value=handle):
                    if expect_error:
                        with self.assertRaises(ChapterIndexOutOfRange):
                            get_chapter(epub_file, "b1", index)
                    else:
                        get_chapter(epub_file, "b1", index)
                self.assertTrue(handle.closed)

    def test_failures_are_logged(self) -> None:
        epub_file = write_sample_epub(self.tmp / "book.epub")
        with self.assertLogs("folio.service", level="WARNING") as captured:
            with self.assertRaises(ChapterIndexOutOfRange):
                get_chapter(epub_file, "b1", 9)
        self.assertIn("chapter 9", captured.output[0])


class ProducedBookTests(unittest.TestCase):
    def test_book_written_by_ebooklib(self) -> None:
        book = epub.EpubBook()
        book.set_identifier("folio-produced")
        book.set_title("Produced")
        book.set_language("en")
        chapter = epub.EpubHtml(title="Intro", file_name="text/intro.xhtml", lang="en")
        chapter.content = "<h1>Intro</h1><p><img src=\"../images/pic.png\" alt=\"pic\"/></p>"
        image = epub.EpubItem(uid="pic", file_name="images/pic.png", media_type="image/png", content=PNG_BYTES)
        book.add_item(chapter)
        book.add_item(image)
        book.toc = (epub.Link("text/intro.xhtml", "Intro", "intro"),)
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())
        book.spine = ["nav", chapter]

        with tempfile.TemporaryDirectory() as tmp:
            epub_file = Path(tmp) / "produced.epub"
            epub.write_epub(str(epub_file), book)
            spine = list_chapters(epub_file)
            fragment = get_chapter(epub_file, "produced", len(spine) - 1)
            item = get_asset(epub_file, _image_paths(fragment.html)[0])

        self.assertEqual(len(spine), 2)
        self.assertTrue(spine[-1].endswith("text/intro.xhtml"))
        self.assertEqual(fragment.total_chapters, 2)
        self.assertTrue(item.path.endswith("images/pic.png"))
        self.assertEqual(item.content, PNG_BYTES)
        self.assertEqual(item.media_type, "image/png")


if __name__ == "__main__":
    unittest.main()
