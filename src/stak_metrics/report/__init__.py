from __future__ import annotations

from .formatter import (
    render_offering,
    render_offering_list,
    render_vault,
    render_vault_list,
)
from .serializer import build_document, dumps_document

__all__ = [
    "build_document",
    "dumps_document",
    "render_offering",
    "render_offering_list",
    "render_vault",
    "render_vault_list",
]
