"""
pikepdf persistence layer: load a tagged PDF into a TagTree-backed
DocumentContext, and write the remediated tree back.

Loading reads /StructTreeRoot, the role map, page annotations (with any
inherited form field type and flags), Type0 font ToUnicode maps and the
catalog flags. Saving rewrites every attached structure element, rebuilds
the ParentTree, turns artifact MCIDs into /Artifact sequences in the page
content streams, drops removed annotations from their pages and the
AcroForm and writes the updated catalog flags and ToUnicode CMaps.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pikepdf
from pikepdf import Array, Dictionary, Name, Operator, String

from structfix.content_source import ContentSource
from structfix.document_context import Annotation, DocumentContext, DocumentInfo, FontInfo
from structfix.errors import DocumentLoadError
from structfix.geometry import rect_from_array
from structfix.pdf_content import PdfPlumberContentSource
from structfix.tag_tree import ROOT, MarkedContentRef, ObjectRef, TagTree, is_element

logger = logging.getLogger(__name__)

CMAP_BATCH_SIZE = 100


def _resolve_pdf_object(value: Any) -> Any:
    """Dereference indirect objects safely; return the original if not possible."""
    if value is None:
        return None

    try:
        get_obj = getattr(value, "get_object", None)
        if callable(get_obj):
            return get_obj()
    except Exception:
        return value

    return value


def _object_key(obj: Any) -> Optional[Tuple[int, int]]:
    """Stable key for comparing pikepdf objects (object number and generation)."""
    obj = getattr(obj, "obj", obj)
    obj = _resolve_pdf_object(obj)
    objgen = getattr(obj, "objgen", None)
    if objgen and objgen[0]:
        return int(objgen[0]), int(objgen[1])
    return None


def _object_number(obj: Any) -> Optional[int]:
    key = _object_key(obj)
    return key[0] if key else None


def _name_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text[1:] if text.startswith("/") else text


def _text_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        return str(value)
    except Exception:
        return None


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, Array):
        return list(value)
    return [value]


class LoadedDocument:
    """An open PDF with its DocumentContext and the pikepdf objects behind each handle."""

    def __init__(self, pdf: pikepdf.Pdf, context: DocumentContext, path: Path):
        self.pdf = pdf
        self.context = context
        self.path = path
        self.element_objects: Dict[int, Dictionary] = {}
        self.annotation_objects: Dict[int, Dictionary] = {}
        self.font_objects: Dict[int, Dictionary] = {}
        self.page_numbers: Dict[Tuple[int, int], int] = {}

    def close(self) -> None:
        content = self.context.content
        if hasattr(content, "close"):
            content.close()
        self.pdf.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def page_number(self, obj: Any) -> int:
        key = _object_key(obj)
        return self.page_numbers.get(key, 0) if key else 0

    def page_object(self, page: int):
        return self.pdf.pages[page - 1].obj


# ---------------------------------------------------------------------- load


def load_tagged_document(path, content: Optional[ContentSource] = None) -> LoadedDocument:
    """Open ``path`` and build the DocumentContext the engine works on."""
    path = Path(path)
    if not path.exists():
        raise DocumentLoadError(f"File not found: {path}")
    try:
        pdf = pikepdf.open(path)
    except pikepdf.PdfError as exc:
        raise DocumentLoadError(f"Could not open {path}: {exc}") from exc

    try:
        if content is None:
            content = PdfPlumberContentSource(path)
        context = DocumentContext(tree=None, content=content, page_count=len(pdf.pages))
        loaded = LoadedDocument(pdf, context, path)
        for number, page in enumerate(pdf.pages, 1):
            key = _object_key(page)
            if key:
                loaded.page_numbers[key] = number

        struct_root = pdf.Root.get("/StructTreeRoot")
        if struct_root is not None:
            context.tree = _read_tree(loaded, struct_root)
        context.info = _read_info(loaded, struct_root)
        context.annotations = _read_annotations(loaded)
        context.fonts = _read_fonts(loaded)
    except DocumentLoadError:
        pdf.close()
        raise
    except Exception as exc:
        pdf.close()
        raise DocumentLoadError(f"Could not read tag structure of {path}: {exc}") from exc

    tree = context.tree
    logger.info(
        "[PdfTagTree] Loaded %s: %d page(s), %s element(s), %d annotation(s), %d Type0 font(s)",
        path.name,
        context.page_count,
        len(tree) - 1 if tree is not None else "no",
        len(context.annotations),
        len(context.fonts),
    )
    return loaded


def _read_tree(loaded: LoadedDocument, struct_root) -> TagTree:
    role_map = {}
    raw_role_map = _resolve_pdf_object(struct_root.get("/RoleMap"))
    if isinstance(raw_role_map, Dictionary):
        for key, value in raw_role_map.items():
            role_map[_name_value(key)] = _name_value(value)

    tree = TagTree(role_map)
    seen = set()
    # (parent handle, kid object, inherited page)
    stack = [(ROOT, kid, 0) for kid in reversed(_as_list(struct_root.get("/K")))]
    while stack:
        parent, raw, inherited_page = stack.pop()
        kid = _resolve_pdf_object(raw)

        if isinstance(kid, int) and not isinstance(kid, bool):
            if parent != ROOT and inherited_page:
                tree.add_kid(parent, MarkedContentRef(int(kid), inherited_page))
            continue
        if not isinstance(kid, Dictionary):
            continue

        kid_type = _name_value(kid.get("/Type"))
        if kid_type == "MCR":
            page = loaded.page_number(kid.get("/Pg")) or inherited_page
            if parent != ROOT and page and "/MCID" in kid:
                tree.add_kid(parent, MarkedContentRef(int(kid.MCID), page))
            continue
        if kid_type == "OBJR":
            target = kid.get("/Obj")
            number = _object_number(target)
            page = loaded.page_number(kid.get("/Pg")) or inherited_page
            if parent != ROOT and number is not None:
                tree.add_kid(parent, ObjectRef(number, page))
            continue
        if "/S" not in kid:
            continue

        key = _object_key(kid)
        if key is not None:
            if key in seen:
                logger.warning("[PdfTagTree] Structure element %s referenced twice; ignoring repeat", key[0])
                continue
            seen.add(key)

        page = loaded.page_number(kid.get("/Pg"))
        handle = tree.new_element(
            _name_value(kid.S),
            page=page or None,
            title=_text_value(kid.get("/T")),
            object_number=key[0] if key else None,
        )
        node = tree.node(handle)
        node.alt = _text_value(kid.get("/Alt"))
        node.actual_text = _text_value(kid.get("/ActualText"))
        tree.add_kid(parent, handle)

        kids = _as_list(kid.get("/K"))
        loaded.element_objects[handle] = kid if key is not None else loaded.pdf.make_indirect(kid)
        for grandkid in reversed(kids):
            stack.append((handle, grandkid, page or inherited_page))
    return tree


def _read_info(loaded: LoadedDocument, struct_root) -> DocumentInfo:
    root = loaded.pdf.Root
    mark_info = _resolve_pdf_object(root.get("/MarkInfo"))
    marked = False
    if isinstance(mark_info, Dictionary):
        marked = bool(mark_info.get("/Marked", False))

    info = DocumentInfo(language=_text_value(root.get("/Lang")) or None, marked=marked)
    keys = []
    for number, page in enumerate(loaded.pdf.pages, 1):
        info.tab_orders[number] = _name_value(page.obj.get("/Tabs"))
        if "/StructParents" in page.obj:
            keys.append(int(page.obj.StructParents))

    if struct_root is not None:
        if "/ParentTreeNextKey" in struct_root:
            keys.append(int(struct_root.ParentTreeNextKey) - 1)
        parent_tree = _resolve_pdf_object(struct_root.get("/ParentTree"))
        if isinstance(parent_tree, Dictionary):
            nums = _as_list(parent_tree.get("/Nums"))
            keys.extend(int(value) for value in nums[0::2])
    info.next_parent_tree_key = max(keys) + 1 if keys else 0
    return info


def _read_annotations(loaded: LoadedDocument) -> List[Annotation]:
    annotations = []
    for number, page in enumerate(loaded.pdf.pages, 1):
        for raw in _as_list(page.obj.get("/Annots")):
            annot = _resolve_pdf_object(raw)
            if not isinstance(annot, Dictionary):
                continue
            object_number = _object_number(annot)
            if object_number is None:
                continue
            action = _resolve_pdf_object(annot.get("/A"))
            uri = None
            if isinstance(action, Dictionary) and "/URI" in action:
                uri = _text_value(action.URI)
            struct_parent = annot.get("/StructParent")
            field_flags = _inherited_field_value(annot, "/Ff")
            annotations.append(
                Annotation(
                    object_number=object_number,
                    page=number,
                    subtype=_name_value(annot.get("/Subtype")) or "",
                    rect=rect_from_array(_as_list(annot.get("/Rect"))),
                    quad_points=[float(v) for v in _as_list(annot.get("/QuadPoints"))],
                    uri=uri,
                    struct_parent=int(struct_parent) if struct_parent is not None else None,
                    field_type=_name_value(_inherited_field_value(annot, "/FT")),
                    field_flags=int(field_flags) if field_flags is not None else 0,
                )
            )
            loaded.annotation_objects[object_number] = annot
    return annotations


def _inherited_field_value(annot: Dictionary, key: str, max_depth: int = 20) -> Any:
    """Look ``key`` up on a widget and then along its form field /Parent chain."""
    current = annot
    for _ in range(max_depth):
        if not isinstance(current, Dictionary):
            return None
        if key in current:
            return current.get(key)
        current = _resolve_pdf_object(current.get("/Parent"))
    return None


def _read_fonts(loaded: LoadedDocument) -> List[FontInfo]:
    fonts: Dict[int, FontInfo] = {}
    for number, page in enumerate(loaded.pdf.pages, 1):
        resources = _resolve_pdf_object(page.obj.get("/Resources"))
        if not isinstance(resources, Dictionary):
            continue
        font_resources = _resolve_pdf_object(resources.get("/Font"))
        if not isinstance(font_resources, Dictionary):
            continue
        for _name, raw in font_resources.items():
            font = _resolve_pdf_object(raw)
            if not isinstance(font, Dictionary) or _name_value(font.get("/Subtype")) != "Type0":
                continue
            object_number = _object_number(font)
            to_unicode = font.get("/ToUnicode")
            if object_number is None or object_number in fonts or not isinstance(to_unicode, pikepdf.Stream):
                continue
            try:
                mapping, code_bytes = parse_to_unicode(to_unicode.read_bytes())
            except Exception as exc:
                logger.debug("[PdfTagTree] Unreadable ToUnicode in font #%s: %s", object_number, exc)
                continue
            fonts[object_number] = FontInfo(
                object_number=object_number,
                name=_name_value(font.get("/BaseFont")) or "unknown",
                subtype="Type0",
                first_page=number,
                to_unicode=mapping,
                code_bytes=code_bytes,
            )
            loaded.font_objects[object_number] = font
    return list(fonts.values())


# ---------------------------------------------------------------- ToUnicode

_HEX = r"<([0-9A-Fa-f\s]*)>"
_BFCHAR_BLOCK = re.compile(r"beginbfchar(.*?)endbfchar", re.DOTALL)
_BFRANGE_BLOCK = re.compile(r"beginbfrange(.*?)endbfrange", re.DOTALL)
_BFCHAR_ENTRY = re.compile(_HEX + r"\s*" + _HEX)
_BFRANGE_ENTRY = re.compile(_HEX + r"\s*" + _HEX + r"\s*(?:" + _HEX + r"|\[([^\]]*)\])")


def _hex_bytes(value: str) -> bytes:
    cleaned = re.sub(r"\s+", "", value)
    if len(cleaned) % 2:
        cleaned += "0"
    return bytes.fromhex(cleaned)


def _utf16(value: str) -> str:
    return _hex_bytes(value).decode("utf-16-be", errors="replace")


def parse_to_unicode(data: bytes) -> Tuple[Dict[int, str], int]:
    """Parse bfchar/bfrange entries of a ToUnicode CMap into ``{code: text}``."""
    text = data.decode("latin-1")
    mapping: Dict[int, str] = {}
    code_bytes = 1

    for block in _BFCHAR_BLOCK.findall(text):
        for source, target in _BFCHAR_ENTRY.findall(block):
            source_bytes = _hex_bytes(source)
            code_bytes = max(code_bytes, len(source_bytes))
            mapping[int.from_bytes(source_bytes, "big")] = _utf16(target)

    for block in _BFRANGE_BLOCK.findall(text):
        for low, high, target, targets in _BFRANGE_ENTRY.findall(block):
            low_bytes = _hex_bytes(low)
            code_bytes = max(code_bytes, len(low_bytes))
            start = int.from_bytes(low_bytes, "big")
            end = int.from_bytes(_hex_bytes(high), "big")
            if targets:
                for offset, item in enumerate(re.findall(_HEX, targets)):
                    if start + offset > end:
                        break
                    mapping[start + offset] = _utf16(item)
                continue
            base = _utf16(target)
            if not base:
                continue
            for offset in range(end - start + 1):
                mapping[start + offset] = base[:-1] + chr(ord(base[-1]) + offset)
    return mapping, code_bytes


def build_to_unicode(mapping: Dict[int, str], code_bytes: int) -> bytes:
    """Serialize ``mapping`` as a ToUnicode CMap using bfchar batches."""
    width = code_bytes * 2
    lines = [
        "/CIDInit /ProcSet findresource begin",
        "12 dict begin",
        "begincmap",
        "/CIDSystemInfo << /Registry (Adobe) /Ordering (UCS) /Supplement 0 >> def",
        "/CMapName /Adobe-Identity-UCS def",
        "/CMapType 2 def",
        "1 begincodespacerange",
        f"<{'0' * width}> <{'F' * width}>",
        "endcodespacerange",
    ]
    items = sorted(mapping.items())
    for start in range(0, len(items), CMAP_BATCH_SIZE):
        batch = items[start:start + CMAP_BATCH_SIZE]
        lines.append(f"{len(batch)} beginbfchar")
        for code, text in batch:
            lines.append(f"<{code:0{width}X}> <{text.encode('utf-16-be').hex().upper()}>")
        lines.append("endbfchar")
    lines.extend(["endcmap", "CMapName currentdict /CMap defineresource pop", "end", "end"])
    return "\n".join(lines).encode("latin-1")


# ---------------------------------------------------------------------- save


def save_tagged_document(loaded: LoadedDocument, output_path) -> Path:
    """Write the context's tree and document properties into ``output_path``."""
    pdf = loaded.pdf
    ctx = loaded.context

    if ctx.tree is not None:
        _write_tree(loaded)
    _write_artifacts(loaded)
    _write_annotations(loaded)
    _write_fonts(loaded)
    _write_info(loaded)

    output_path = Path(output_path)
    pdf.save(output_path)
    logger.info("[PdfTagTree] Saved remediated document to %s", output_path)
    return output_path


def _element_object(loaded: LoadedDocument, handle: int) -> Dictionary:
    element = loaded.element_objects.get(handle)
    if element is None:
        element = loaded.pdf.make_indirect(Dictionary(Type=Name("/StructElem")))
        loaded.element_objects[handle] = element
    return element


def _set_or_delete(target: Dictionary, key: str, value) -> None:
    if value is None:
        if key in target:
            del target[key]
    else:
        target[key] = value


def _write_tree(loaded: LoadedDocument) -> None:
    pdf = loaded.pdf
    tree = loaded.context.tree
    struct_root = pdf.Root.StructTreeRoot
    mcid_owners: Dict[int, Dict[int, Dictionary]] = defaultdict(dict)
    objref_owners: Dict[int, Dictionary] = {}

    for handle in tree.iter_preorder():
        node = tree.node(handle)
        element = _element_object(loaded, handle)
        parent = node.parent
        element.S = Name("/" + node.role)
        element.P = struct_root if parent == ROOT else _element_object(loaded, parent)
        _set_or_delete(element, "/Pg", loaded.page_object(node.page) if node.page else None)
        _set_or_delete(element, "/T", String(node.title) if node.title else None)
        _set_or_delete(element, "/Alt", String(node.alt) if node.alt else None)
        _set_or_delete(element, "/ActualText", String(node.actual_text) if node.actual_text else None)

        kids = Array()
        for kid in node.kids:
            if is_element(kid):
                kids.append(_element_object(loaded, kid))
            elif isinstance(kid, MarkedContentRef):
                mcid_owners[kid.page][kid.mcid] = element
                if kid.page == node.page:
                    kids.append(kid.mcid)
                else:
                    kids.append(Dictionary(Type=Name("/MCR"), Pg=loaded.page_object(kid.page), MCID=kid.mcid))
            elif isinstance(kid, ObjectRef):
                target = loaded.annotation_objects.get(kid.object_number)
                if target is None:
                    continue
                objref_owners[kid.object_number] = element
                objr = Dictionary(Type=Name("/OBJR"), Obj=target)
                if kid.page:
                    objr.Pg = loaded.page_object(kid.page)
                kids.append(objr)
        element.K = kids

    struct_root.K = Array([_element_object(loaded, kid) for kid in tree.struct_kids(ROOT)])
    _set_or_delete(
        struct_root,
        "/RoleMap",
        Dictionary({"/" + k: Name("/" + v) for k, v in tree.role_map.items()}) if tree.role_map else None,
    )
    _write_parent_tree(loaded, struct_root, mcid_owners, objref_owners)


def _write_parent_tree(loaded, struct_root, mcid_owners, objref_owners) -> None:
    ctx = loaded.context
    entries: Dict[int, Any] = {}

    for page, owners in sorted(mcid_owners.items()):
        page_obj = loaded.page_object(page)
        if "/StructParents" in page_obj:
            key = int(page_obj.StructParents)
        else:
            key = ctx.next_parent_tree_key()
            page_obj.StructParents = key
        size = max(owners) + 1
        entries[key] = Array([owners.get(mcid) for mcid in range(size)])

    for annotation in ctx.annotations:
        owner = objref_owners.get(annotation.object_number)
        if annotation.removed or annotation.struct_parent is None or owner is None:
            continue
        entries[annotation.struct_parent] = owner

    nums = Array()
    for key in sorted(entries):
        nums.append(key)
        nums.append(entries[key])
    struct_root.ParentTree = loaded.pdf.make_indirect(Dictionary(Nums=nums))
    struct_root.ParentTreeNextKey = max(ctx.info.next_parent_tree_key, max(entries, default=-1) + 1)


def _marked_content_id(operands, page_obj) -> Optional[int]:
    if len(operands) < 2:
        return None
    properties = operands[1]
    if isinstance(properties, Name):
        resources = _resolve_pdf_object(page_obj.get("/Resources"))
        named = _resolve_pdf_object(resources.get("/Properties")) if isinstance(resources, Dictionary) else None
        properties = _resolve_pdf_object(named.get(properties)) if isinstance(named, Dictionary) else None
    if isinstance(properties, Dictionary) and "/MCID" in properties:
        return int(properties.MCID)
    return None


def _write_artifacts(loaded: LoadedDocument) -> None:
    pdf = loaded.pdf
    for page, mcids in sorted(loaded.context.artifact_mcids.items()):
        if not mcids:
            continue
        page_obj = loaded.page_object(page)
        instructions = pikepdf.parse_content_stream(pdf.pages[page - 1])
        rewritten = set()
        updated = []
        for instruction in instructions:
            operator = str(getattr(instruction, "operator", ""))
            if operator == "BDC":
                mcid = _marked_content_id(list(instruction.operands), page_obj)
                if mcid is not None and mcid in mcids:
                    updated.append(pikepdf.ContentStreamInstruction([Name("/Artifact")], Operator("BMC")))
                    rewritten.add(mcid)
                    continue
            updated.append(instruction)

        missing = set(mcids) - rewritten
        if missing:
            logger.warning(
                "[PdfTagTree] Page %s: MCID(s) %s not found in the page content stream",
                page,
                ", ".join(str(m) for m in sorted(missing)),
            )
        if rewritten:
            page_obj.Contents = pdf.make_indirect(pikepdf.Stream(pdf, pikepdf.unparse_content_stream(updated)))
            logger.debug("[PdfTagTree] Page %s: %d sequence(s) marked as artifact", page, len(rewritten))


def _write_annotations(loaded: LoadedDocument) -> None:
    ctx = loaded.context
    removed = {a.object_number for a in ctx.annotations if a.removed}
    for annotation in ctx.annotations:
        annot = loaded.annotation_objects.get(annotation.object_number)
        if annot is None or annotation.removed or annotation.struct_parent is None:
            continue
        annot.StructParent = annotation.struct_parent

    if not removed:
        return
    for page in loaded.pdf.pages:
        annots = page.obj.get("/Annots")
        if annots is None:
            continue
        kept = Array([a for a in annots if _object_number(a) not in removed])
        if len(kept) != len(annots):
            page.obj.Annots = kept
    _remove_form_fields(loaded, removed)


def _remove_form_fields(loaded: LoadedDocument, removed) -> None:
    """Drop removed widgets from the AcroForm, along with field parents left without kids."""
    root = loaded.pdf.Root
    acroform = _resolve_pdf_object(root.get("/AcroForm"))
    if not isinstance(acroform, Dictionary):
        return

    changed = False
    for number in sorted(removed):
        annot = loaded.annotation_objects.get(number)
        if annot is None:
            continue
        field_number = number
        parent = _resolve_pdf_object(annot.get("/Parent"))
        if isinstance(parent, Dictionary) and "/Kids" in parent:
            kids = Array([kid for kid in parent.Kids if _object_number(kid) != number])
            if len(kids):
                parent.Kids = kids
                continue
            # The field had no other widget, so the field itself goes
            field_number = _object_number(parent)
        fields = acroform.get("/Fields")
        if fields is None:
            continue
        kept = Array([f for f in fields if _object_number(f) != field_number])
        if len(kept) != len(fields):
            acroform.Fields = kept
            changed = True
            logger.debug("[PdfTagTree] Removed form field #%s from the AcroForm", field_number)

    fields = acroform.get("/Fields")
    if changed and fields is not None and len(fields) == 0:
        del root["/AcroForm"]
        logger.debug("[PdfTagTree] Removed empty AcroForm")


def _write_fonts(loaded: LoadedDocument) -> None:
    for font in loaded.context.fonts:
        if not font.dirty:
            continue
        font_obj = loaded.font_objects.get(font.object_number)
        if font_obj is None:
            continue
        data = build_to_unicode(font.to_unicode, font.code_bytes)
        font_obj.ToUnicode = loaded.pdf.make_indirect(pikepdf.Stream(loaded.pdf, data))


def _write_info(loaded: LoadedDocument) -> None:
    root = loaded.pdf.Root
    info = loaded.context.info
    if info.language:
        root.Lang = String(info.language)
    if info.marked:
        mark_info = _resolve_pdf_object(root.get("/MarkInfo"))
        if not isinstance(mark_info, Dictionary):
            root.MarkInfo = Dictionary(Marked=True)
        else:
            mark_info.Marked = True
    for number, page in enumerate(loaded.pdf.pages, 1):
        tab_order = info.tab_orders.get(number)
        if tab_order:
            page.obj.Tabs = Name("/" + tab_order)
