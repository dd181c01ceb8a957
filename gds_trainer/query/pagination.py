"""Forward/backward paging over the rows of one availability search.

Display numbering is global across pages: page two of a five-row search
starts at 6. Moving back replays the rows already materialized for that
page with their original numbers; only moving forward queries the
repository.
"""

from typing import Awaitable, Callable, List, Optional, Tuple

from pydantic import BaseModel, Field

from gds_trainer.errors import PreconditionError
from gds_trainer.parse.commands import Availability
from gds_trainer.types import FlightRow


NO_ACTIVE_SEARCH = "NO ACTIVE SEARCH - ENTER AN, SN OR TN FIRST"
NO_MORE_RESULTS = "NO MORE RESULTS"
NO_PREVIOUS_PAGES = "NO PREVIOUS PAGES"

# after-marker -> (rows to show, next marker, repository page came back full)
FetchPage = Callable[[str], Awaitable[Tuple[List[FlightRow], Optional[str], bool]]]


class PageSnapshot(BaseModel):
    rows: List[FlightRow] = Field(default_factory=list)
    start_index: int = 1
    next_cursor: Optional[str] = None  # only set when the page came back full
    full: bool = False

    @property
    def end_index(self) -> int:
        return self.start_index + len(self.rows)


class SearchContext(BaseModel):
    intent: Availability
    page_size: int
    current: PageSnapshot
    previous_pages: List[PageSnapshot] = Field(default_factory=list)


class PaginationCursor:
    def __init__(self):
        self.context: Optional[SearchContext] = None

    @property
    def active(self) -> bool:
        return self.context is not None

    def start(self, intent: Availability, page_size: int, rows: List[FlightRow],
              next_cursor: Optional[str], full: bool) -> PageSnapshot:
        """Reset for a fresh search and make ``rows`` the current page."""
        page = PageSnapshot(rows=rows, start_index=1, next_cursor=next_cursor if full else None, full=full)
        self.context = SearchContext(intent=intent, page_size=page_size, current=page)
        return page

    async def next(self, fetch: FetchPage) -> PageSnapshot:
        ctx = self._require_context()
        marker = ctx.current.next_cursor
        if not marker:
            raise PreconditionError(NO_MORE_RESULTS)

        rows, next_cursor, full = await fetch(marker)
        if not rows and not next_cursor:
            raise PreconditionError(NO_MORE_RESULTS)

        # Only mutate once the fetch succeeded
        page = PageSnapshot(
            rows=rows,
            start_index=ctx.current.end_index,
            next_cursor=next_cursor if full else None,
            full=full,
        )
        ctx.previous_pages.append(ctx.current)
        ctx.current = page
        return page

    def previous(self) -> PageSnapshot:
        ctx = self._require_context()
        if not ctx.previous_pages:
            raise PreconditionError(NO_PREVIOUS_PAGES)
        ctx.current = ctx.previous_pages.pop()
        return ctx.current

    def row_at(self, line_number: int) -> FlightRow:
        """Row shown under ``line_number`` on the current page.

        The returned row is a copy: selling from it never touches the page.
        """
        if self.context is None or not self.context.current.rows:
            raise PreconditionError("NO FLIGHTS DISPLAYED - ENTER AN, SN OR TN BEFORE SELLING")
        page = self.context.current
        if not page.start_index <= line_number < page.end_index:
            raise PreconditionError(
                f"INVALID LINE NUMBER - MUST BE BETWEEN {page.start_index} AND {page.end_index - 1}"
            )
        return page.rows[line_number - page.start_index].model_copy(deep=True)

    def _require_context(self) -> SearchContext:
        if self.context is None:
            raise PreconditionError(NO_ACTIVE_SEARCH)
        return self.context
