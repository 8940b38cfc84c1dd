"""
Pagination - page-by-page SELECT with navigation links

One select() call counts the matching rows, resolves the current page,
fetches that page only, and keeps the figures pagine() needs to render
the Bootstrap-style link list.
"""

from math import ceil
from typing import Any, List, Mapping, Optional, Sequence, Union
import re

from ..client import FetchMode
from ..constants import DEFAULT_RECORDS_PER_PAGE
from ..db import Db
from ..exceptions import DataForgeSQLError, InvalidParameterError, PaginationError
from ..query.where import Condition
from .options import PaginationOptions

import logging
logger = logging.getLogger(__name__)


PageInput = Union[None, int, str]


def parse_page(value: PageInput) -> int:
    """Page number from a request value; anything unusable means page 1."""
    if isinstance(value, bool) or value is None:
        return 1
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return 1


class Pagination:
    """
    Paginated SELECT.

    Usage:
        pagination = Pagination(db, records_per_page=20)
        pagination.select("products", "*", {"category": "books"},
                          {"order_by": "title"}, current_page_from_request=request.args.get("p"))
        for product in pagination.fetch_all():
            ...
        html = pagination.pagine("/products?sort=title")
    """

    def __init__(self, db: Db, options: Optional[PaginationOptions] = None,
                 records_per_page: int = DEFAULT_RECORDS_PER_PAGE):
        """
        Args:
            db: Database facade the queries go through
            options: Link rendering options
            records_per_page: Page size
        """
        self.db = db
        self.options = options or PaginationOptions()
        self._records_per_page = 0
        self.set_records_per_page(records_per_page)
        self._page_override: Optional[int] = None
        self._reset_state()

    def _reset_state(self) -> None:
        self.total_records_count = 0
        self.number_of_pages = 0
        self.current_page = 1
        self.current_number_of_records = 0

    # ==================== Query ====================

    def select(self, from_: str, fields: Union[str, Sequence[str]] = "*",
               where: Condition = None, parameters: Optional[Mapping[str, Any]] = None,
               debug: Union[bool, str] = False,
               current_page_from_request: PageInput = None) -> "Pagination":
        """
        Count the matching rows, then fetch the current page.

        Args:
            from_: FROM expression
            fields: Selected columns
            where: WHERE condition
            parameters: select_distinct / group_by / order_by (limit is replaced)
            debug: Debug mode for both queries
            current_page_from_request: Page asked for by the request (``?p=``)

        Returns:
            self

        Raises:
            PaginationError: If counting or fetching fails
        """
        self._reset_state()
        parameters = dict(parameters or {})

        total = self._count(from_, fields, where, parameters, debug)
        pages = ceil(total / self._records_per_page)
        page = self._resolve_page(current_page_from_request, pages)

        parameters["limit"] = f"{(page - 1) * self._records_per_page},{self._records_per_page}"
        try:
            self.db.select(from_, fields, where, parameters, debug)
            fetched = self.db.num_rows()
        except DataForgeSQLError as e:
            raise PaginationError(f"Error getting the current page records: {e}") from e

        self.total_records_count = total
        self.number_of_pages = pages
        self.current_page = page
        self.current_number_of_records = fetched
        logger.debug(f"Page {page}/{pages}: {fetched} of {total} records")
        return self

    def _count(self, from_: str, fields: Union[str, Sequence[str]], where: Condition,
               parameters: Mapping[str, Any], debug: Union[bool, str]) -> int:
        distinct = bool(parameters.get("select_distinct"))
        group_by = parameters.get("group_by")
        columns = fields if isinstance(fields, str) else ", ".join(fields)

        try:
            if group_by:
                row = self._count_groups(from_, columns, where, distinct, group_by, debug)
            else:
                expression = "*"
                if distinct and columns.strip() != "*":
                    expression = f"DISTINCT {columns}"
                row = self.db.select_count(from_, {expression: "rowsCount"}, where,
                                           None, debug, fetch_mode=FetchMode.NUM)
        except DataForgeSQLError as e:
            raise PaginationError(f"Error getting the total number of records: {e}") from e

        if not row:
            raise PaginationError("Error getting the total number of records")
        return int(row[0])

    def _count_groups(self, from_: str, columns: str, where: Condition, distinct: bool,
                      group_by: str, debug: Union[bool, str]) -> Any:
        builder = self.db.query_builder
        builder.select(columns).from_(from_).where(where).group_by(group_by).distinct(distinct)
        inner = builder.get_sql()
        placeholders = builder.get_placeholders()
        return self.db.query_row(
            f"SELECT COUNT(*) AS rowsCount FROM ({inner}) grouped_rows",
            placeholders, FetchMode.NUM, debug,
        )

    def _resolve_page(self, requested: PageInput, pages: int) -> int:
        page = self._page_override if self._page_override is not None else parse_page(requested)
        if page > pages:
            page = pages
        return max(page, 1)

    # ==================== Rows ====================

    def fetch(self, fetch_mode: FetchMode = FetchMode.OBJECT) -> Any:
        return self.db.fetch(fetch_mode)

    def fetch_all(self, fetch_mode: FetchMode = FetchMode.OBJECT) -> List[Any]:
        return self.db.fetch_all(fetch_mode)

    # ==================== Settings ====================

    @property
    def records_per_page(self) -> int:
        return self._records_per_page

    def set_records_per_page(self, records_per_page: int) -> "Pagination":
        if isinstance(records_per_page, bool) or not isinstance(records_per_page, int) \
                or records_per_page < 1:
            raise InvalidParameterError(f"Invalid records per page: {records_per_page!r}")
        self._records_per_page = records_per_page
        return self

    def set_current_page(self, current_page: Optional[int]) -> "Pagination":
        """Force the page of the next select(); None goes back to the request value."""
        self._page_override = current_page
        return self

    def set_options(self, options: Mapping[str, Any]) -> "Pagination":
        self.options.set(options)
        return self

    # ==================== Links ====================

    def remove_previous_querystring(self, url: str) -> str:
        """Strip the page parameter a previous pagination added to ``url``."""
        qs = re.escape(self.options.querystring)
        if self.options.rewrite_links:
            url = re.sub(re.escape(self.options.rewrite_transition) + qs + r"[0-9]+", "", url)
            if self.options.rewrite_extension:
                url = url.replace(self.options.rewrite_extension, "")
            return url

        url = re.sub(rf"\?{qs}=([0-9]+)&(amp;)?", "?", url)
        url = re.sub(rf"\?{qs}=([0-9]+)", "", url)
        return re.sub(rf"&(amp;)?{qs}=([0-9]+)", "", url)

    def _page_url(self, url: str, transition: str, page: int) -> str:
        opts = self.options
        if page == 1:
            return url + opts.rewrite_extension if opts.rewrite_links else url
        if opts.rewrite_links:
            return f"{url}{transition}{opts.querystring}{page}{opts.rewrite_extension}"
        return f"{url}{transition}{opts.querystring}={page}"

    @staticmethod
    def _item(href: str, label: Any, css: str = "") -> str:
        css_class = f"page-item {css}" if css else "page-item"
        return f'<li class="{css_class}"><a class="page-link" href="{href}">{label}</a></li>'

    def pagine(self, url: str) -> str:
        """
        Render the navigation links and the "results X to Y of Z" summary.

        Returns:
            HTML, or an empty string when there are no records
        """
        if self.total_records_count == 0:
            return ""

        opts = self.options
        url = self.remove_previous_querystring(url)
        if opts.rewrite_links:
            transition = opts.rewrite_transition
        else:
            transition = "&amp;" if "?" in url else "?"

        current = self.current_page
        pages = self.number_of_pages
        items: List[str] = []

        if pages > 1:
            loop_start = max(1, current - opts.nav_length)
            loop_end = min(pages, current + opts.nav_length)
            for page in range(loop_start, loop_end + 1):
                if page == current:
                    items.append(self._item("#", page, opts.active_class))
                else:
                    items.append(self._item(self._page_url(url, transition, page), page))

            items.insert(0, self._item("#", opts.page_label, opts.disabled_class))

            if current > 1:
                previous = self._page_url(url, transition, current - 1)
                items.insert(0, self._item(previous, opts.previous_markup))
                items.insert(0, self._item(self._page_url(url, transition, 1), opts.first_markup))

            if current < pages:
                items.append(self._item(self._page_url(url, transition, current + 1), opts.next_markup))
                items.append(self._item(self._page_url(url, transition, pages), opts.last_markup))

            start = self._records_per_page * (current - 1) + 1
            end = start + self.current_number_of_records - 1
        else:
            start = 1
            end = self.total_records_count

        return (
            f'<ul class="{opts.pagination_class}">{"".join(items)}</ul>'
            '<div class="heading-elements pt-2 pr-3">'
            f'<p class="text-right text-semibold">{opts.results_label} {start} '
            f'{opts.to_label} {end} {opts.of_label} {self.total_records_count}</p>'
            '</div>'
        )
