from __future__ import annotations

import html
import re
from typing import Callable, Optional, Sequence

from lxml import etree as LXML_ET
from lxml import html as lxml_html

from .archive import ArchiveHandle
from .errors import (
    ChapterEntryUnresolvable,
    ChapterIndexOutOfRange,
    ChapterReadFailed,
    EntryNotFound,
    EntryReadFailed,
)
from .models import ChapterFragment, PackageDocument
from .paths import join_dir, parent_dir, resolve

XLINK_NS = "http://www.w3.org/1999/xlink"
XLINK_HREF = f"{{{XLINK_NS}}}href"
ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
SVG_WRAPPER_TAG = "folio-svg"

AssetUrl = Callable[[str], str]


class _ReferenceRewriter:
    def __init__(self, directory: str, entries: Sequence[str], asset_url: AssetUrl) -> None:
        self.directory = directory
        self.entries = entries
        self.asset_url = asset_url

    def __call__(self, value: Optional[str]) -> Optional[str]:
        if not value or ABSOLUTE_URL_RE.match(value):
            return None
        resolved = resolve(join_dir(self.directory, value), self.entries)
        if resolved is None:
            resolved = resolve(value, self.entries)
        if resolved is None:
            return None
        return self.asset_url(resolved)

    def rewrite_attribute(self, node: LXML_ET._Element, attribute: str) -> None:
        replacement = self(node.get(attribute))
        if replacement is not None:
            node.set(attribute, replacement)


def _parse_chapter(raw: bytes) -> LXML_ET._Element:
    # EPUB text content is UTF-8; ignore conflicting <meta charset> or XML declarations.
    parser = lxml_html.HTMLParser(encoding="utf-8", recover=True)
    return lxml_html.document_fromstring(raw, parser=parser)


def _is_stylesheet_link(node: LXML_ET._Element) -> bool:
    rel = (node.get("rel") or "").lower().split()
    return "stylesheet" in rel


def _rewrite_svg(svg: LXML_ET._Element, rewriter: _ReferenceRewriter) -> Optional[LXML_ET._Element]:
    markup = LXML_ET.tostring(svg, method="xml", encoding="unicode", with_tail=False)
    wrapped = f'<{SVG_WRAPPER_TAG} xmlns:xlink="{XLINK_NS}">{markup}</{SVG_WRAPPER_TAG}>'
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True, recover=True)
    try:
        wrapper = LXML_ET.fromstring(wrapped.encode("utf-8"), parser=parser)
    except LXML_ET.XMLSyntaxError:
        return None
    if wrapper is None:
        return None
    fragments = [child for child in wrapper if isinstance(child.tag, str)]
    if not fragments:
        return None
    fragment = fragments[0]
    targets = list(fragment.xpath("descendant-or-self::*[@xlink:href]", namespaces={"xlink": XLINK_NS}))
    for node in targets:
        rewriter.rewrite_attribute(node, XLINK_HREF)
    return fragment


def _rewrite_references(root: LXML_ET._Element, rewriter: _ReferenceRewriter) -> None:
    images = list(root.xpath("//img[@src]"))
    for node in images:
        rewriter.rewrite_attribute(node, "src")

    links = [node for node in root.xpath("//link[@href]") if _is_stylesheet_link(node)]
    for node in links:
        rewriter.rewrite_attribute(node, "href")

    # Lenient HTML parsing drops namespaces, so each outermost <svg> is
    # re-parsed as XML to reach xlink:href, then spliced back in.
    svgs = list(root.xpath("//svg[not(ancestor::svg)]"))
    for svg in svgs:
        parent = svg.getparent()
        if parent is None:
            continue
        replacement = _rewrite_svg(svg, rewriter)
        if replacement is None:
            continue
        replacement.tail = svg.tail
        parent.replace(svg, replacement)


def _inner_html(root: LXML_ET._Element) -> str:
    parts: list[str] = []
    if root.text:
        parts.append(html.escape(root.text, quote=False))
    for child in root:
        parts.append(lxml_html.tostring(child, encoding="unicode"))
    return "".join(parts)


def render_chapter(
    handle: ArchiveHandle,
    package: PackageDocument,
    chapter_index: int,
    asset_url: AssetUrl,
) -> ChapterFragment:
    """Load one spine entry and return its markup with asset references rewritten.

    Image sources, stylesheet links and SVG xlink:href values that resolve to
    an archive entry are replaced by ``asset_url(resolved_path)``; absolute
    http(s) URLs and references that cannot be resolved are left alone.
    """
    total = len(package.spine)
    if chapter_index < 0 or chapter_index >= total:
        raise ChapterIndexOutOfRange(f"chapter missing: {chapter_index} (total {total})")

    nominal = package.spine[chapter_index]
    entries = handle.entries
    real_path = resolve(nominal, entries)
    if real_path is None:
        raise ChapterEntryUnresolvable(f"chapter file not found in zip: {nominal}")

    try:
        raw = handle.read(real_path)
    except (EntryNotFound, EntryReadFailed) as exc:
        raise ChapterReadFailed(f"failed to read chapter content: {real_path}") from exc

    if not raw.strip():
        return ChapterFragment(html="", chapter_index=chapter_index, total_chapters=total)
    try:
        root = _parse_chapter(raw)
    except (LXML_ET.ParserError, LXML_ET.XMLSyntaxError) as exc:
        raise ChapterReadFailed(f"failed to parse chapter content: {real_path}") from exc

    rewriter = _ReferenceRewriter(parent_dir(real_path), entries, asset_url)
    _rewrite_references(root, rewriter)
    return ChapterFragment(html=_inner_html(root), chapter_index=chapter_index, total_chapters=total)
