"""
Dotted path resolution inside component trees.

A path is a dot-separated, case-sensitive sequence of component names.
The first segment may name the root (``Song.Lyrics``) or be left out
(``Lyrics``); both readings are tried and must agree.
"""

from typing import NamedTuple, TypeVar

from pydantic import BaseModel

from music_grading.errors import AmbiguousPath, ComponentNotFound, NotALeaf
from music_grading.models import PATH_SEPARATOR, children_of, is_block

NodeT = TypeVar("NodeT", bound=BaseModel)


class ResolvedComponent(NamedTuple):
    """A node found by path, with its position in the tree."""

    node: BaseModel
    indices: tuple[int, ...]  # child index at each level below the root
    canonical_path: str  # root-anchored path, e.g. "Song.Lyrics"


def split_path(path: str) -> list[str]:
    """
    Split a dotted path into segments.

    Raises:
        ComponentNotFound: If the path is empty or has empty segments
            (leading, trailing or doubled dots).
    """
    if not path:
        raise ComponentNotFound(path, "path is empty")
    segments = path.split(PATH_SEPARATOR)
    if any(not s for s in segments):
        raise ComponentNotFound(path, "path has an empty segment")
    return segments


def _walk(root: NodeT, segments: list[str], path: str) -> tuple[int, ...] | None:
    """Follow segments below ``root``; return child indices or None."""
    node: BaseModel = root
    indices: list[int] = []

    for segment in segments:
        matches = [i for i, child in enumerate(children_of(node)) if child.name == segment]
        if not matches:
            return None
        if len(matches) > 1:
            raise AmbiguousPath(path, f"more than one component named '{segment}'")
        indices.append(matches[0])
        node = children_of(node)[matches[0]]

    return tuple(indices)


def node_at(root: NodeT, indices: tuple[int, ...]) -> NodeT:
    """Return the node reached by following child indices from ``root``."""
    node = root
    for index in indices:
        node = children_of(node)[index]
    return node


def canonical_path(root: NodeT, indices: tuple[int, ...]) -> str:
    names = [root.name]
    node = root
    for index in indices:
        node = children_of(node)[index]
        names.append(node.name)
    return PATH_SEPARATOR.join(names)


def locate(root: NodeT, path: str) -> ResolvedComponent:
    """
    Resolve a path to a unique node and its position.

    Args:
        root: Root of a definition, bounded, show or graded tree.
        path: Dotted component path.

    Returns:
        The resolved component.

    Raises:
        ComponentNotFound: If no node matches.
        AmbiguousPath: If the path matches more than one node.
    """
    segments = split_path(path)

    candidates: set[tuple[int, ...]] = set()
    if segments[0] == root.name:
        anchored = _walk(root, segments[1:], path)
        if anchored is not None:
            candidates.add(anchored)
    relative = _walk(root, segments, path)
    if relative is not None:
        candidates.add(relative)

    if not candidates:
        raise ComponentNotFound(path)
    if len(candidates) > 1:
        raise AmbiguousPath(path, "path matches both from the root and below it")

    indices = candidates.pop()
    return ResolvedComponent(
        node=node_at(root, indices),
        indices=indices,
        canonical_path=canonical_path(root, indices),
    )


def resolve(root: NodeT, path: str) -> NodeT:
    """
    Resolve a path to a unique node.

    Raises:
        ComponentNotFound: If no node matches.
        AmbiguousPath: If the path matches more than one node.
    """
    return locate(root, path).node


def resolve_leaf(root: NodeT, path: str) -> ResolvedComponent:
    """
    Resolve a path that must end on a grade.

    Raises:
        ComponentNotFound: If no node matches.
        AmbiguousPath: If the path matches more than one node.
        NotALeaf: If the path ends on a block.
    """
    resolved = locate(root, path)
    if is_block(resolved.node):
        raise NotALeaf(path)
    return resolved


def iter_leaf_paths(root: BaseModel) -> list[str]:
    """List the canonical paths of every grade in a tree, in tree order."""
    paths: list[str] = []

    def visit(node: BaseModel, prefix: str) -> None:
        path = f"{prefix}{PATH_SEPARATOR}{node.name}" if prefix else node.name
        if is_block(node):
            for child in children_of(node):
                visit(child, path)
        else:
            paths.append(path)

    visit(root, "")
    return paths
