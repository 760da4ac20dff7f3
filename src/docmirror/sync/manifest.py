"""Navigation manifest (``menu.yml``) parsing and page extraction.

A manifest is a YAML document with a top-level ``menu`` key.  Its value is
a sequence (or mapping) of nodes:

.. code-block:: yaml

    menu:
      - name: Introduction
        page: intro
      - name: GitHub
        href: https://github.com/acme/widget
      - name: Guides
        icon: fa-book
        children:
          - name: Install
            page: guides/install
      - Changelog: changelog          # title -> page shorthand

The raw YAML is parsed once into ``ManifestNode`` values:

- ``PageLink``: a page identifier under a title key.
- ``MenuItem``: an entry with optional ``page``, ``href``, ``icon`` and
  nested ``children``.
- ``ChildGroup``: a mapping entry literally keyed ``children``.

``extract_pages()`` then walks that tree without further type checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Union

import yaml

from docmirror.errors import ParseError

logger = logging.getLogger(__name__)

EXTERNAL_PREFIXES = ("http", "//", "git")

_ITEM_KEYS = frozenset({"name", "page", "href", "icon"})


@dataclass(frozen=True)
class PageLink:
    title: str
    page: str


@dataclass(frozen=True)
class MenuItem:
    name: str | None = None
    page: str | None = None
    href: str | None = None
    icon: str | None = None
    children: tuple[ManifestNode, ...] = ()


@dataclass(frozen=True)
class ChildGroup:
    children: tuple[ManifestNode, ...] = ()


ManifestNode = Union[PageLink, MenuItem, ChildGroup]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _scalar(value: Any, where: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bool, dict, list)):
        logger.warning("Ignoring %s: expected a string, got %r", where, value)
        return None
    return str(value)


def _parse_item(data: dict) -> MenuItem:
    name = _scalar(data.get("name"), "name")
    children = data.get("children")
    if children is not None and not isinstance(children, (list, dict)):
        logger.warning("Ignoring children of '%s': got %r", name, children)
        children = None
    return MenuItem(
        name=name,
        page=_scalar(data.get("page"), f"page of '{name}'"),
        href=_scalar(data.get("href"), f"href of '{name}'"),
        icon=_scalar(data.get("icon"), f"icon of '{name}'"),
        children=_parse_nodes(children) if children is not None else (),
    )


def _parse_mapping(data: dict) -> list[ManifestNode]:
    nodes: list[ManifestNode] = []
    for key, value in data.items():
        if key == "children" and isinstance(value, (list, dict)):
            nodes.append(ChildGroup(children=_parse_nodes(value)))
        elif isinstance(value, str):
            nodes.append(PageLink(title=str(key), page=value))
        elif isinstance(value, dict):
            nodes.append(_parse_item(value))
        elif value is not None:
            logger.warning("Skipping unsupported menu entry '%s': %r", key, value)
    return nodes


def _parse_nodes(data: Any) -> tuple[ManifestNode, ...]:
    if isinstance(data, dict):
        return tuple(_parse_mapping(data))
    if not isinstance(data, list):
        raise ParseError(f"Expected a list of menu entries, got {data!r}")

    nodes: list[ManifestNode] = []
    for entry in data:
        if isinstance(entry, dict):
            if _ITEM_KEYS.intersection(entry):
                nodes.append(_parse_item(entry))
            else:
                nodes.extend(_parse_mapping(entry))
        elif entry is not None:
            logger.warning("Skipping unsupported menu entry: %r", entry)
    return tuple(nodes)


def parse_manifest(text: str | bytes) -> tuple[ManifestNode, ...]:
    """Parse manifest YAML into its top-level ``menu`` nodes.

    Entries of an unsupported shape are logged and skipped.

    Raises:
        ParseError: If the document is not valid YAML, has no ``menu`` key,
            or its ``menu`` is not a sequence or mapping.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid manifest YAML: {exc}") from exc

    if not isinstance(data, dict) or "menu" not in data:
        raise ParseError("Manifest has no top-level 'menu' key")
    if data["menu"] is None:
        return ()
    return _parse_nodes(data["menu"])


# ---------------------------------------------------------------------------
# Walking
# ---------------------------------------------------------------------------


def iter_pages(nodes: tuple[ManifestNode, ...]) -> Iterator[str]:
    """Yield every page identifier depth-first, in document order.

    Duplicates and external links are included.
    """
    for node in nodes:
        match node:
            case PageLink(page=page):
                yield page
            case MenuItem(page=page, children=children):
                if page is not None:
                    yield page
                yield from iter_pages(children)
            case ChildGroup(children=children):
                yield from iter_pages(children)


def is_external(page: str) -> bool:
    return page.startswith(EXTERNAL_PREFIXES)


def extract_pages(nodes: tuple[ManifestNode, ...]) -> list[str]:
    """Return the internal page identifiers reachable from *nodes*.

    Order is depth-first document order; a repeated identifier is kept at
    its first position only; identifiers starting with ``http``, ``//`` or
    ``git`` are dropped.
    """
    seen: set[str] = set()
    pages: list[str] = []
    for page in iter_pages(nodes):
        if is_external(page) or page in seen:
            continue
        seen.add(page)
        pages.append(page)
    return pages
