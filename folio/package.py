from __future__ import annotations

import logging
from typing import Optional

from lxml import etree as LXML_ET

from .archive import ArchiveHandle
from .errors import (
    ContainerMissing,
    EntryNotFound,
    EntryReadFailed,
    PackageMalformed,
    PackageMissing,
    RootfileMissing,
)
from .models import PackageDocument
from .paths import join_dir

CONTAINER_PATH = "META-INF/container.xml"
OPF_NS = "http://www.idpf.org/2007/opf"

logger = logging.getLogger("folio.package")


def _tag_local_name(tag: object) -> str:
    if not tag or not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _xml_root_from_bytes(raw: bytes) -> Optional[LXML_ET._Element]:
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True, recover=True)
    try:
        return LXML_ET.fromstring(raw, parser=parser)
    except LXML_ET.XMLSyntaxError:
        return None


def locate_package_document(handle: ArchiveHandle) -> str:
    try:
        container_raw = handle.read(CONTAINER_PATH)
    except (EntryNotFound, EntryReadFailed) as exc:
        raise ContainerMissing("container.xml not found") from exc
    if not container_raw.strip():
        raise ContainerMissing("container.xml is empty")

    root = _xml_root_from_bytes(container_raw)
    if root is None:
        raise RootfileMissing("rootfile not found in container.xml")
    for node in root.iter():
        if _tag_local_name(node.tag) != "rootfile":
            continue
        full_path = (node.get("full-path") or "").strip()
        if not full_path:
            raise RootfileMissing("rootfile in container.xml has no full-path")
        return full_path
    raise RootfileMissing("rootfile not found in container.xml")


def package_directory(package_path: str) -> str:
    if "/" not in package_path:
        return ""
    directory = package_path.rsplit("/", 1)[0].strip("/")
    return "" if directory == "." else directory


def _query(root: LXML_ET._Element, container: str, child: str) -> list[LXML_ET._Element]:
    namespace = LXML_ET.QName(root).namespace
    if namespace:
        return root.xpath(f"//opf:{container}/opf:{child}", namespaces={"opf": namespace})
    return root.xpath(f"//{container}/{child}")


def parse_package(handle: ArchiveHandle, package_path: str) -> PackageDocument:
    try:
        raw = handle.read(package_path)
    except (EntryNotFound, EntryReadFailed) as exc:
        raise PackageMissing(f"OPF not found in zip: {package_path}") from exc
    if not raw.strip():
        raise PackageMalformed(f"OPF is empty: {package_path}")
    root = _xml_root_from_bytes(raw)
    if root is None:
        raise PackageMalformed(f"OPF is not parseable XML: {package_path}")

    directory = package_directory(package_path)
    manifest: dict[str, str] = {}
    for item in _query(root, "manifest", "item"):
        item_id = item.get("id") or ""
        href = item.get("href") or ""
        if not item_id or not href:
            continue
        manifest[item_id] = join_dir(directory, href)

    spine: list[str] = []
    dropped: list[str] = []
    for itemref in _query(root, "spine", "itemref"):
        idref = itemref.get("idref") or ""
        if idref in manifest:
            spine.append(manifest[idref])
        else:
            dropped.append(idref)
    if dropped:
        logger.debug("skipped %d spine itemref(s) without manifest item in %s: %s", len(dropped), package_path, dropped)

    return PackageDocument(
        path=package_path,
        directory=directory,
        manifest=manifest,
        spine=spine,
        dropped_itemrefs=dropped,
    )


def load_package(handle: ArchiveHandle) -> PackageDocument:
    return parse_package(handle, locate_package_document(handle))
