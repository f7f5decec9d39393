"""
Header Mapper - guess which canonical field each source column holds.

Supplier exports never agree on column names ("Cat No.", "Catalogue",
"REF"...). Headers are normalized and looked up in a static alias table;
the operator reviews the suggestion before anything is committed.
"""

import re
from typing import Optional

from .models import ColumnMapping, ImportField

# Aliases shorter than this are only matched exactly ("ref", "set", "bin")
MIN_SUBSTRING_ALIAS = 4

HEADER_ALIASES: dict[str, ImportField] = {
    # SKU / catalogue number
    "sku": ImportField.SKU,
    "code": ImportField.SKU,
    "catalogue": ImportField.SKU,
    "catalog": ImportField.SKU,
    "catno": ImportField.SKU,
    "catalogueno": ImportField.SKU,
    "catalognumber": ImportField.SKU,
    "cataloguenumber": ImportField.SKU,
    "itemno": ImportField.SKU,
    "partno": ImportField.SKU,
    "ref": ImportField.SKU,
    "reference": ImportField.SKU,
    # Name / description
    "product": ImportField.NAME,
    "productname": ImportField.NAME,
    "item": ImportField.NAME,
    "itemname": ImportField.NAME,
    "name": ImportField.NAME,
    "description": ImportField.DESCRIPTION,
    "productdescription": ImportField.DESCRIPTION,
    "desc": ImportField.DESCRIPTION,
    # Supplier
    "supplier": ImportField.SUPPLIER,
    "manufacturer": ImportField.SUPPLIER,
    "brand": ImportField.SUPPLIER,
    "vendor": ImportField.SUPPLIER,
    # Classification
    "system": ImportField.SYSTEM,
    "systems": ImportField.SYSTEM,
    "tray": ImportField.SYSTEM,
    "set": ImportField.SYSTEM,
    "category": ImportField.CATEGORY,
    "type": ImportField.TYPE,
    "itemtype": ImportField.TYPE,
    # Levels
    "qty": ImportField.QTY,
    "quantity": ImportField.QTY,
    "stock": ImportField.QTY,
    "onhand": ImportField.QTY,
    "min": ImportField.MIN,
    "minimum": ImportField.MIN,
    "reorderlevel": ImportField.MIN,
    "minlevel": ImportField.MIN,
    "max": ImportField.MAX,
    "maximum": ImportField.MAX,
    "maxlevel": ImportField.MAX,
    "rop": ImportField.ROP,
    "reorder": ImportField.ROP,
    "reorderpoint": ImportField.ROP,
    "usage": ImportField.USAGE,
    # Placement
    "room": ImportField.ROOM,
    "theatre": ImportField.ROOM,
    "storage": ImportField.STORAGE_NAME,
    "storagename": ImportField.STORAGE_NAME,
    "cabinet": ImportField.STORAGE_NAME,
    "cupboard": ImportField.STORAGE_NAME,
    "drawer": ImportField.DRAWER,
    "layer": ImportField.DRAWER,
    "shelf": ImportField.DRAWER,
    "slot": ImportField.SLOT,
    "bin": ImportField.SLOT,
    "position": ImportField.SLOT,
    # Free text
    "comments": ImportField.COMMENTS,
    "comment": ImportField.COMMENTS,
    "notes": ImportField.COMMENTS,
    "note": ImportField.COMMENTS,
}

# "Min Stock", "Max Qty": a leading level qualifier names the field
LEVEL_PREFIXES = (
    ("min", ImportField.MIN),
    ("max", ImportField.MAX),
    ("rop", ImportField.ROP),
)
LEVEL_WORDS = {"stock", "qty", "quantity", "level", "lvl", "onhand", "holding"}

# "Product Code", "Supplier Ref": an identifier after an item word is the SKU
IDENTIFIER_SUFFIXES = ("reference", "number", "code", "ref", "num", "no")
ITEM_WORDS = {
    "product", "item", "article", "stock", "part", "cat", "catalogue", "catalog",
    "supplier", "manufacturer", "vendor",
}


def normalize_header(header) -> str:
    """Lowercase and drop separators/punctuation: "Re-Order Level" -> "reorderlevel"."""
    if header is None:
        return ""
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


class HeaderMapper:
    """Alias lookup with optional extra aliases from config."""

    def __init__(self, extra_aliases: Optional[dict[str, ImportField]] = None):
        self.aliases = dict(HEADER_ALIASES)
        for alias, target in (extra_aliases or {}).items():
            self.aliases[normalize_header(alias)] = target

        # Longest alias first so "reorderpoint" beats "reorder"
        self._substring_aliases = sorted(
            (a for a in self.aliases if len(a) >= MIN_SUBSTRING_ALIAS),
            key=len,
            reverse=True,
        )

    def guess_field(self, header) -> Optional[ImportField]:
        """Canonical field for one header, or None if nothing fits."""
        key = normalize_header(header)
        if not key:
            return None

        exact = self.aliases.get(key)
        if exact is not None:
            return exact

        for prefix, target in LEVEL_PREFIXES:
            if key.startswith(prefix) and key[len(prefix):] in LEVEL_WORDS:
                return target

        for suffix in IDENTIFIER_SUFFIXES:
            if key.endswith(suffix) and key[:-len(suffix)] in ITEM_WORDS:
                return ImportField.SKU

        # Longest contained alias wins, then the one starting earliest ("Room Name" -> room)
        best = None
        for alias in self._substring_aliases:
            pos = key.find(alias)
            if pos < 0:
                continue
            rank = (-len(alias), pos)
            if best is None or rank < best[0]:
                best = (rank, alias)
        return self.aliases[best[1]] if best else None

    def suggest_mapping(self, headers: list[str]) -> ColumnMapping:
        """
        Best-effort mapping for a header row.

        The first column claiming a field wins; later duplicates are ignored.
        Unmapped headers are not errors.
        """
        mapping = ColumnMapping()
        for index, header in enumerate(headers):
            target = self.guess_field(header)
            if target is not None and not mapping.is_mapped(target):
                mapping.set(target, index)
        return mapping


def suggest_mapping(headers: list[str], extra_aliases: Optional[dict[str, ImportField]] = None) -> ColumnMapping:
    """Convenience wrapper around HeaderMapper.suggest_mapping."""
    return HeaderMapper(extra_aliases).suggest_mapping(headers)
