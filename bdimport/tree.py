"""
Generic bookmark tree walker.

Browsers that keep bookmarks as a nested document (Chrome-family JSON,
Safari property lists) share one traversal. The dynamic document is decoded
once into ``UrlNode`` / ``FolderNode`` objects using a per-browser
``TreeSchema``, then walked depth-first in pre-order.

Each bookmark is attributed to its nearest enclosing folder only, not to the
full folder path.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from bdimport.errors import ImportCancelled, MalformedRecord
from bdimport.models import Bookmark, BrowserSource

logger = logging.getLogger(__name__)

FieldPath = Union[str, Tuple[str, ...]]


def _no_date(value: Any) -> Optional[datetime]:
    return None


@dataclass(frozen=True)
class TreeSchema:
    """Field names and type discriminants for one browser's bookmark tree."""
    name: str
    type_field: str
    url_type: str
    folder_type: str
    title_field: FieldPath
    folder_name_field: FieldPath
    url_field: FieldPath
    children_field: str
    date_field: Optional[FieldPath] = None
    parse_date: Callable[[Any], Optional[datetime]] = _no_date
    root_labels: Mapping[str, str] = field(default_factory=dict)
    folder_labels: Mapping[str, str] = field(default_factory=dict)

    def folder_label(self, name: Optional[str]) -> Optional[str]:
        """Display label for a folder name, None for unnamed folders."""
        if not name:
            return None
        return self.folder_labels.get(name, name)


@dataclass(frozen=True)
class UrlNode:
    title: Optional[str]
    url: Optional[str]
    date_added: Any = None


@dataclass(frozen=True)
class FolderNode:
    name: Optional[str]
    children: Tuple["TreeNode", ...] = ()


TreeNode = Union[UrlNode, FolderNode]


def get_field(mapping: Mapping[str, Any], path: FieldPath) -> Any:
    """Look up a plain key or a nested key path; None when any step is missing."""
    if isinstance(path, str):
        return mapping.get(path)
    value: Any = mapping
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def decode_node(raw: Any, schema: TreeSchema) -> Optional[TreeNode]:
    """
    Decode one dynamic node; None for non-mappings and unknown node types.
    """
    if not isinstance(raw, Mapping):
        return None

    node_type = raw.get(schema.type_field)
    if node_type == schema.url_type:
        date_added = get_field(raw, schema.date_field) if schema.date_field else None
        return UrlNode(
            title=_text(get_field(raw, schema.title_field)),
            url=_text(get_field(raw, schema.url_field)),
            date_added=date_added,
        )
    if node_type == schema.folder_type:
        return decode_folder(raw, schema)
    return None


def decode_folder(raw: Any, schema: TreeSchema) -> FolderNode:
    """Decode a mapping as a folder regardless of its type field."""
    if not isinstance(raw, Mapping):
        return FolderNode(name=None)

    children_raw = raw.get(schema.children_field)
    children: List[TreeNode] = []
    if isinstance(children_raw, Sequence) and not isinstance(children_raw, (str, bytes)):
        for child in children_raw:
            node = decode_node(child, schema)
            if node is not None:
                children.append(node)

    return FolderNode(
        name=_text(get_field(raw, schema.folder_name_field)),
        children=tuple(children),
    )


class BookmarkTreeWalker:
    """Flatten a typed bookmark tree into an ordered list of bookmarks."""

    def __init__(self, schema: TreeSchema, should_stop: Optional[Callable[[], bool]] = None):
        self.schema = schema
        self.should_stop = should_stop

    def walk(self, node: TreeNode, source: BrowserSource,
             label: Optional[str] = None) -> List[Bookmark]:
        """Walk one node; a folder labels its own subtree."""
        bookmarks: List[Bookmark] = []
        self._walk(node, source, label, bookmarks)
        return bookmarks

    def walk_children(self, children: Sequence[TreeNode], source: BrowserSource,
                      label: Optional[str] = None) -> List[Bookmark]:
        """Walk a list of sibling nodes under a given folder label."""
        bookmarks: List[Bookmark] = []
        for child in children:
            self._walk(child, source, label, bookmarks)
        return bookmarks

    def walk_roots(self, roots: Mapping[str, Any], source: BrowserSource) -> List[Bookmark]:
        """
        Decode and walk each root named in the schema, in schema order.

        Roots are labelled from ``schema.root_labels`` rather than their own
        name field; missing roots are skipped.
        """
        bookmarks: List[Bookmark] = []
        for key, label in self.schema.root_labels.items():
            raw = roots.get(key)
            if raw is None:
                continue
            root = decode_folder(raw, self.schema)
            bookmarks.extend(self.walk_children(root.children, source, label))
        return bookmarks

    def _walk(self, node: TreeNode, source: BrowserSource,
              label: Optional[str], out: List[Bookmark]):
        if isinstance(node, UrlNode):
            bookmark = self._to_bookmark(node, source, label)
            if bookmark is not None:
                out.append(bookmark)
            return

        if self.should_stop and self.should_stop():
            raise ImportCancelled(f"Cancelled while walking {self.schema.name} bookmarks")

        child_label = self.schema.folder_label(node.name) or label
        for child in node.children:
            self._walk(child, source, child_label, out)

    def _to_bookmark(self, node: UrlNode, source: BrowserSource,
                     label: Optional[str]) -> Optional[Bookmark]:
        if node.url is None or node.title is None:
            return None

        date_added = None
        if node.date_added is not None:
            date_added = self.schema.parse_date(node.date_added)

        try:
            return Bookmark.create(node.title, node.url, date_added, source, folder=label)
        except MalformedRecord as e:
            logger.debug(f"Dropping {self.schema.name} bookmark node: {e}")
            return None
