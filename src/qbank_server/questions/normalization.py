"""
Subtopic Normalization

Subtopic names arrive from ingest with inconsistent casing, spacing and
trailing punctuation ("Binary Trees.", "binary  trees"). Two functions
separate the two uses of such text:

- `normalize()` produces a comparison key. Every "same subtopic" check
  in the filter and similarity engines goes through it.
- `display_form()` produces a presentable label.

The acronym table is incomplete on purpose; unknown acronyms fall through to
title-casing. Add entries with `register_display_form()`.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

_WHITESPACE = re.compile(r"\s+")

_DISPLAY_EXCEPTIONS: Dict[str, str] = {
    "alu, data-path and control unit": "ALU, Data-path and Control Unit",
    "cpu and i/o scheduling": "CPU and I/O Scheduling",
    "i/o interface (interrupt and dma mode)": "I/O Interface (Interrupt and DMA Mode)",
    "er-model": "ER-model",
    "dns": "DNS",
    "smtp": "SMTP",
    "http": "HTTP",
    "ftp": "FTP",
    "tcp": "TCP",
    "udp": "UDP",
    "sql": "SQL",
    "ip": "IP",
    "cidr": "CIDR",
    "arp": "ARP",
    "dhcp": "DHCP",
    "icmp": "ICMP",
    "nat": "NAT",
    "osi": "OSI",
    "api": "API",
    "url": "URL",
    "html": "HTML",
    "css": "CSS",
    "xml": "XML",
    "json": "JSON",
    "pdf": "PDF",
    "cpu": "CPU",
    "gpu": "GPU",
    "ram": "RAM",
    "rom": "ROM",
    "usb": "USB",
    "dma": "DMA",
    "alu": "ALU",
    "gcc": "GCC",
    "llvm": "LLVM",
}

DISPLAY_EXCEPTIONS: Mapping[str, str] = MappingProxyType(_DISPLAY_EXCEPTIONS)

LOWERCASE_WORDS = frozenset(
    {"and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by", "the", "a", "an"}
)


def register_display_form(key: str, display: str) -> None:
    """Add or replace an entry in the display exception table."""
    _DISPLAY_EXCEPTIONS[normalize(key)] = display


def normalize(text: Optional[str]) -> str:
    """
    Return the comparison key for a classification string.

    Trims, collapses whitespace runs, drops one trailing period and
    lower-cases. Never use the result for display.
    """
    if not text:
        return ""

    key = _WHITESPACE.sub(" ", text.strip())
    if key.endswith("."):
        key = key[:-1].rstrip()
    return key.lower()


def display_form(text: Optional[str]) -> str:
    """Return the presentable label for a classification string."""
    key = normalize(text)
    if not key:
        return ""

    special = DISPLAY_EXCEPTIONS.get(key)
    if special is not None:
        return special

    words = key.split(" ")
    titled = [words[0][:1].upper() + words[0][1:]]
    for word in words[1:]:
        if word in LOWERCASE_WORDS:
            titled.append(word)
        else:
            titled.append(word[:1].upper() + word[1:])
    return " ".join(titled)


def unique_display_values(values: Optional[Iterable[Optional[str]]]) -> List[str]:
    """
    Deduplicate by normalization key and return display forms, sorted.

    The first occurrence of each key supplies its representative.
    """
    if not values:
        return []

    representatives: Dict[str, str] = {}
    for value in values:
        key = normalize(value)
        if key and key not in representatives:
            representatives[key] = display_form(value)

    return sorted(representatives.values())
