"""
Pagination Options - markup and URL settings of the page links
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping

from ..constants import DEFAULT_NAV_LENGTH, DEFAULT_QUERYSTRING
from ..exceptions import InvalidParameterError


@dataclass
class PaginationOptions:
    """
    Settings of Pagination.pagine().

    ``rewrite_links`` switches page URLs from ``/products?p=3`` to
    ``page{transition}{querystring}3{extension}``, e.g. ``/products-p3.html``
    with transition ``"-"`` and extension ``".html"``.
    """
    active_class: str = "active"
    disabled_class: str = "disabled"
    pagination_class: str = "pagination pagination-flat"
    first_markup: str = '<i class="fas fa-angle-double-left"></i>'
    previous_markup: str = '<i class="fas fa-angle-left"></i>'
    next_markup: str = '<i class="fas fa-angle-right"></i>'
    last_markup: str = '<i class="fas fa-angle-double-right"></i>'
    nav_length: int = DEFAULT_NAV_LENGTH
    querystring: str = DEFAULT_QUERYSTRING
    rewrite_links: bool = False
    rewrite_transition: str = "&"
    rewrite_extension: str = ""
    page_label: str = "Page"
    results_label: str = "results"
    to_label: str = "to"
    of_label: str = "of"

    def set(self, options: Mapping[str, Any]) -> "PaginationOptions":
        """
        Update several options.

        Raises:
            InvalidParameterError: On an unknown option name
        """
        known = {f.name for f in fields(self)}
        unknown = [name for name in options if name not in known]
        if unknown:
            raise InvalidParameterError(f"Unknown pagination option(s): {', '.join(unknown)}")
        for name, value in options.items():
            setattr(self, name, value)
        return self

    def get_all(self) -> Dict[str, Any]:
        return asdict(self)
