"""
Pagination - page windows over SELECT results and their navigation links
"""

from .options import PaginationOptions
from .paginator import Pagination, parse_page

__all__ = ["Pagination", "PaginationOptions", "parse_page"]
