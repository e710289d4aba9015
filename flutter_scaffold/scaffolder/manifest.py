"""Structural editing of ``pubspec.yaml`` manifests.

``ManifestEditor`` composes the document with PyYAML into a node graph that
keeps source positions, and applies key-path assignments by splicing only
the affected span of the original text.  Everything outside the targeted
key paths -- comments, blank lines, quoting, ordering -- is left
byte-for-byte intact.

``merge_manifest`` uses the editor to write a ``DependencySet`` and the
template metadata key into a manifest.  When an assignment runs into a
structural conflict (a scalar or list where a mapping is needed) the
conflicting subtree is replaced by a fresh mapping holding only the new key.
Sibling data under that path is lost; the merge never fails because of it.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterable, Sequence

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from .dependencies import DependencySet
from .registry import TemplateId

METADATA_KEY = "flutter_cli"

_NULL_TAG = "tag:yaml.org,2002:null"
_DEFAULT_INDENT = 2
_INDICATORS = frozenset("-?:,[]{}#&*!|>'\"%@`")
_FLOW_UNSAFE = frozenset(",[]{}\n\r\t")
_ALIAS_TOKEN_RE = re.compile(r"\*[^\s,\[\]{}]+")
_ALIAS_RE = re.compile(r"[ \t]*" + _ALIAS_TOKEN_RE.pattern)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ManifestError(Exception):
    """Base class for manifest editing errors."""


class ManifestParseError(ManifestError):
    """Raised when the manifest text is not a single valid YAML document."""


class ManifestPathError(ManifestError):
    """Raised by ``ManifestEditor.get`` when a key path does not exist."""

    def __init__(self, path: Sequence[str]) -> None:
        self.path = list(path)
        super().__init__(f"No value at {_format_path(self.path)}")


class ManifestConflictError(ManifestError):
    """Raised when a node along a key path exists but is not a mapping.

    ``path`` is the location of the offending node; ``[]`` means the
    document root itself.
    """

    def __init__(self, path: Sequence[str], node_kind: str) -> None:
        self.path = list(path)
        self.node_kind = node_kind
        super().__init__(
            f"Expected a mapping at {_format_path(self.path)}, found {node_kind}"
        )


def _format_path(path: Sequence[str]) -> str:
    return ".".join(str(p) for p in path) or "<root>"


# ---------------------------------------------------------------------------
# Value rendering
# ---------------------------------------------------------------------------


def render_scalar(value: Any) -> str:
    """Render a scalar as YAML, quoting strings only when required."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value)
    if _is_plain_safe(text):
        return text
    return json.dumps(text, ensure_ascii=False)


def _is_plain_safe(text: str) -> bool:
    """Return ``True`` if *text* reads back as the same string unquoted."""
    if not text or text != text.strip() or text[0] in _INDICATORS:
        return False
    if any(ch in _FLOW_UNSAFE for ch in text):
        return False
    if ": " in text or " #" in text or text.endswith(":"):
        return False
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError:
        return False
    return isinstance(loaded, str) and loaded == text


def _is_block(value: Any) -> bool:
    return isinstance(value, (dict, list, tuple)) and len(value) > 0


def render_flow(value: Any) -> str:
    """Render *value* on a single line using YAML flow style."""
    if isinstance(value, dict):
        inner = ", ".join(f"{render_scalar(k)}: {render_flow(v)}" for k, v in value.items())
        return "{" + inner + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_flow(v) for v in value) + "]"
    return render_scalar(value)


def render_block(value: Any, step: int = _DEFAULT_INDENT) -> list[str]:
    """Render *value* as block-style lines, relative to column zero."""
    pad = " " * step
    if isinstance(value, dict) and value:
        lines: list[str] = []
        for key, item in value.items():
            if _is_block(item):
                lines.append(f"{render_scalar(key)}:")
                lines.extend(pad + line for line in render_block(item, step))
            else:
                lines.append(f"{render_scalar(key)}: {render_flow(item)}")
        return lines
    if isinstance(value, (list, tuple)) and value:
        lines = []
        for item in value:
            if _is_block(item):
                sub = render_block(item, step)
                lines.append(f"- {sub[0]}")
                lines.extend(f"  {line}" for line in sub[1:])
            else:
                lines.append(f"- {render_flow(item)}")
        return lines
    return [render_flow(value)]


def _nest(path: Sequence[str], value: Any) -> Any:
    """Wrap *value* in one mapping level per key in *path*."""
    for key in reversed(path):
        value = {key: value}
    return value


def _node_kind(node: Node) -> str:
    if isinstance(node, SequenceNode):
        return "a list"
    if isinstance(node, ScalarNode):
        return f"scalar {node.value!r}"
    return type(node).__name__


def _is_empty_null(node: Node | None) -> bool:
    return isinstance(node, ScalarNode) and node.tag == _NULL_TAG and node.value == ""


def _is_alias(key_node: Node, value_node: Node) -> bool:
    """True when *value_node* is reached through ``*alias`` after *key_node*.

    The composer hands out the anchored node itself, whose marks point back
    at the anchor, so an alias value starts before its own key ends.
    """
    return value_node.start_mark.index < key_node.end_mark.index


def _subtree_ids(node: Node) -> set[int]:
    ids: set[int] = set()
    stack = [node]
    while stack:
        current = stack.pop()
        if id(current) in ids:
            continue
        ids.add(id(current))
        if isinstance(current, MappingNode):
            for key_node, value_node in current.value:
                stack.extend((key_node, value_node))
        elif isinstance(current, SequenceNode):
            stack.extend(current.value)
    return ids


def _construct(node: Node) -> Any:
    """Plain Python value of a composed node."""
    loader = yaml.SafeLoader("")
    try:
        return loader.construct_document(node)
    finally:
        loader.dispose()


# ---------------------------------------------------------------------------
# ManifestEditor
# ---------------------------------------------------------------------------


class ManifestEditor:
    """Key-path editor for a YAML document that preserves untouched text.

    Usage::

        editor = ManifestEditor(path.read_text())
        editor.update(["dependencies", "http"], "^1.2.1")
        path.write_text(editor.text)

    The document is re-composed after every edit, so node positions always
    match the current text.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._newline = "\r\n" if "\r\n" in text else "\n"
        self._root = self._compose(text)
        self._step = self._detect_indent_step() or _DEFAULT_INDENT

    # -- Public API --------------------------------------------------------

    @property
    def text(self) -> str:
        """The current document text."""
        return self._text

    def __str__(self) -> str:
        return self._text

    @property
    def data(self) -> Any:
        """The current document loaded as plain Python objects."""
        return yaml.safe_load(self._text)

    def get(self, path: Sequence[str]) -> Any:
        """Return the value stored at *path*.

        Raises:
            ManifestPathError: If any key along the path is missing or a
                non-mapping is found before the end of the path.
        """
        current = self.data
        for depth, key in enumerate(path):
            if not isinstance(current, dict) or key not in current:
                raise ManifestPathError(path[: depth + 1])
            current = current[key]
        return current

    def update(self, path: Sequence[str], value: Any) -> None:
        """Set *value* at *path*.

        Missing keys along the path are created as mappings.  An empty
        ``path`` replaces the whole document.

        Anchored content is never edited through an alias: an alias on the
        path, or an alias elsewhere that points at a node about to change,
        is first written out as a plain copy of its value.  Key paths that
        are not targeted keep their values.

        Raises:
            ManifestConflictError: If a node along the path exists but is not
                a mapping.  The document's data is left unchanged.
        """
        path = list(path)
        if not path:
            self._replace_document(value)
            return

        node = self._root
        if node is None or _is_empty_null(node):
            self._append_to_empty_document(path[0], _nest(path[1:], value))
            return

        for depth, key in enumerate(path):
            if not isinstance(node, MappingNode):
                raise ManifestConflictError(path[:depth], _node_kind(node))

            entry = _find_entry(node, key)
            remaining = path[depth + 1:]
            if entry is None:
                self._insert_entry(node, key, _nest(remaining, value))
                return

            key_node, value_node = entry
            aliased = _is_alias(key_node, value_node)
            if not remaining or _is_empty_null(value_node):
                if not aliased and self._unshare(path[: depth + 1]):
                    self.update(path, value)
                    return
                self._replace_value(node, key_node, value_node, _nest(remaining, value))
                return

            if aliased:
                self._replace_value(node, key_node, value_node, _construct(value_node))
                self.update(path, value)
                return
            if self._unshare(path[: depth + 1]):
                self.update(path, value)
                return
            node = value_node

    # -- Aliases -----------------------------------------------------------

    def _node_at(self, path: Sequence[str]) -> Node | None:
        node = self._root
        for key in path:
            if not isinstance(node, MappingNode):
                return None
            entry = _find_entry(node, key)
            if entry is None:
                return None
            node = entry[1]
        return node

    def _unshare(self, path: Sequence[str]) -> bool:
        """Expand every alias outside *path* that points into its subtree.

        Returns ``True`` if the text changed; node references held by the
        caller are stale in that case.
        """
        changed = False
        while True:
            target = self._node_at(path)
            if target is None:
                return changed
            site = self._find_alias_site(self._root, _subtree_ids(target), target, set())
            if site is None:
                return changed
            if site[0] == "entry":
                _, mapping, key_node, value_node = site
                self._replace_value(mapping, key_node, value_node, _construct(value_node))
            else:
                _, start, end, item = site
                self._splice(start, end, render_flow(_construct(item)))
            changed = True

    def _find_alias_site(
        self, node: Node, shared: set[int], skip: Node, seen: set[int]
    ) -> tuple | None:
        """First alias, in document order, that refers to a node in *shared*.

        Returns ``("entry", mapping, key_node, value_node)`` for a mapping
        value or ``("item", start, end, node)`` for a sequence item.  The
        subtree rooted at *skip* is not searched.
        """
        if node is skip or id(node) in seen:
            return None
        seen.add(id(node))

        if isinstance(node, MappingNode):
            for key_node, value_node in node.value:
                if _is_alias(key_node, value_node):
                    if id(value_node) in shared:
                        return ("entry", node, key_node, value_node)
                    continue
                site = self._find_alias_site(value_node, shared, skip, seen)
                if site is not None:
                    return site

        elif isinstance(node, SequenceNode):
            boundary = node.start_mark.index
            for item in node.value:
                if item.start_mark.index < boundary:
                    match = _ALIAS_TOKEN_RE.search(self._text, boundary)
                    if match is None:
                        return None
                    if id(item) in shared:
                        return ("item", match.start(), match.end(), item)
                    boundary = match.end()
                    continue
                site = self._find_alias_site(item, shared, skip, seen)
                if site is not None:
                    return site
                boundary = self._node_end(item)

        return None

    # -- Parsing -----------------------------------------------------------

    @staticmethod
    def _compose(text: str) -> Node | None:
        try:
            return yaml.compose(text, Loader=yaml.SafeLoader)
        except yaml.YAMLError as exc:
            raise ManifestParseError(f"Manifest is not valid YAML: {exc}") from exc

    def _splice(self, start: int, end: int, replacement: str) -> None:
        self._text = self._text[:start] + replacement + self._text[end:]
        self._root = self._compose(self._text)

    def _detect_indent_step(self) -> int | None:
        """Indentation used by the first nested block mapping under the root."""
        if not isinstance(self._root, MappingNode) or self._root.flow_style:
            return None
        for key_node, value_node in self._root.value:
            if (
                isinstance(value_node, MappingNode)
                and not value_node.flow_style
                and value_node.value
            ):
                step = value_node.value[0][0].start_mark.column - key_node.start_mark.column
                if step > 0:
                    return step
        return None

    # -- Positions ---------------------------------------------------------

    def _colon_after(self, key_node: Node) -> int:
        """Index of the ``:`` separating *key_node* from its value."""
        index = key_node.end_mark.index
        while index < len(self._text) and self._text[index] in " \t":
            index += 1
        if index >= len(self._text) or self._text[index] != ":":
            raise ManifestParseError(
                f"Cannot locate ':' after key {key_node.value!r} "
                f"(line {key_node.start_mark.line + 1})"
            )
        return index

    def _entry_end(self, key_node: Node, value_node: Node) -> int:
        """Index just past the last character of a key/value entry."""
        key_end = key_node.end_mark.index
        if _is_alias(key_node, value_node):
            colon = self._colon_after(key_node)
            match = _ALIAS_RE.match(self._text, colon + 1)
            return match.end() if match else colon + 1
        return max(key_end, self._node_end(value_node))

    def _node_end(self, node: Node) -> int:
        """Index just past the last content character of *node*.

        Block collections report their end at the next token, which would
        swallow trailing comments, so the last child's end is used instead.
        """
        if isinstance(node, MappingNode) and not node.flow_style and node.value:
            return self._entry_end(*node.value[-1])
        if isinstance(node, SequenceNode) and not node.flow_style and node.value:
            return self._node_end(node.value[-1])
        return node.end_mark.index

    def _line_end(self, index: int) -> int:
        pos = self._text.find("\n", index)
        if pos == -1:
            return len(self._text)
        if pos > 0 and self._text[pos - 1] == "\r":
            return pos - 1
        return pos

    # -- Edits -------------------------------------------------------------

    def _render_entry(self, key: str, value: Any, column: int) -> str:
        """``key: value`` text whose continuation lines start at *column*."""
        if not _is_block(value):
            return f"{render_scalar(key)}: {render_flow(value)}"
        pad = self._newline + " " * (column + self._step)
        return f"{render_scalar(key)}:" + "".join(
            pad + line for line in render_block(value, self._step)
        )

    def _replace_value(
        self, mapping: MappingNode, key_node: Node, value_node: Node, value: Any
    ) -> None:
        colon = self._colon_after(key_node)
        end = max(colon + 1, self._entry_end(key_node, value_node))
        if mapping.flow_style or not _is_block(value):
            replacement = " " + render_flow(value)
        else:
            pad = self._newline + " " * (key_node.start_mark.column + self._step)
            replacement = "".join(pad + line for line in render_block(value, self._step))
        self._splice(colon + 1, end, replacement)

    def _insert_entry(self, mapping: MappingNode, key: str, value: Any) -> None:
        if mapping.flow_style:
            entry = f"{render_scalar(key)}: {render_flow(value)}"
            if mapping.value:
                position = self._entry_end(*mapping.value[-1])
                self._splice(position, position, ", " + entry)
            else:
                closing = self._text.rindex("}", 0, mapping.end_mark.index)
                self._splice(closing, closing, entry)
            return

        first_key = mapping.value[0][0]
        column = first_key.start_mark.column
        indent = " " * column
        entry = self._render_entry(key, value, column)
        last_end = self._entry_end(*mapping.value[-1])

        if last_end > 0 and self._text[last_end - 1] == "\n":
            # Block scalars end after their final line break.
            self._splice(last_end, last_end, indent + entry + self._newline)
        else:
            position = self._line_end(last_end)
            self._splice(position, position, self._newline + indent + entry)

    def _append_to_empty_document(self, key: str, value: Any) -> None:
        prefix = ""
        if self._text and not self._text.endswith("\n"):
            prefix = self._newline
        entry = self._render_entry(key, value, 0)
        end = len(self._text)
        self._splice(end, end, prefix + entry + self._newline)

    def _replace_document(self, value: Any) -> None:
        lines = render_block(value, self._step)
        self._splice(0, len(self._text), self._newline.join(lines) + self._newline)


def _find_entry(mapping: MappingNode, key: str) -> tuple[Node, Node] | None:
    """Return the last ``(key_node, value_node)`` pair whose key is *key*."""
    for key_node, value_node in reversed(mapping.value):
        if isinstance(key_node, ScalarNode) and key_node.value == key:
            return key_node, value_node
    return None


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


def assign(editor: ManifestEditor, path: Sequence[str], value: Any) -> bool:
    """Set *value* at *path*, replacing a conflicting subtree if needed.

    Returns ``True`` when the plain assignment worked and ``False`` when a
    structural conflict forced the subtree at the conflicting path to be
    replaced by a fresh mapping.
    """
    try:
        editor.update(path, value)
        return True
    except ManifestConflictError as exc:
        editor.update(exc.path, _nest(list(path)[len(exc.path):], value))
        return False


def _assign_all(
    editor: ManifestEditor, section: str, entries: Iterable[tuple[str, Any]]
) -> None:
    for name, value in entries:
        assign(editor, [section, name], value)


def merge_manifest(
    text: str,
    dependency_set: DependencySet,
    template: "str | TemplateId | None",
    metadata_key: str = METADATA_KEY,
) -> str:
    """Merge dependencies and template metadata into manifest *text*.

    * every runtime entry lands at ``dependencies.<name>``;
    * every development entry lands at ``dev_dependencies.<name>``;
    * ``<metadata_key>`` is set to ``{"template": <template id>}``.

    Existing values at those paths are overwritten, so merging the same set
    twice gives the same result as merging it once.

    Raises:
        ManifestParseError: If *text* is not valid YAML.
    """
    template_id = TemplateId.parse(template)
    editor = ManifestEditor(text)
    _assign_all(editor, "dependencies", dependency_set.dependencies.items())
    _assign_all(editor, "dev_dependencies", dependency_set.dev_dependencies.items())
    assign(editor, [metadata_key], {"template": template_id.value})
    return editor.text


def merge_manifest_file(
    path: str | Path,
    dependency_set: DependencySet,
    template: "str | TemplateId | None",
    metadata_key: str = METADATA_KEY,
) -> Path:
    """Read, merge, and rewrite the manifest at *path*.

    A missing file is treated as an empty document and created.
    """
    manifest_path = Path(path)
    text = manifest_path.read_text(encoding="utf-8") if manifest_path.exists() else ""
    merged = merge_manifest(text, dependency_set, template, metadata_key)
    manifest_path.write_text(merged, encoding="utf-8")
    return manifest_path
