#!/usr/bin/env python3
# candidate_list.py - Paged candidate list with a movable cursor

import logging

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class CandidateList:
    """
    Candidates shown to the user, one page at a time.

    The cursor is a global index into the whole list. Paging moves the
    cursor to the first candidate of the new page; moving the cursor past
    either end of the list wraps around and shows the page it lands on.
    Indices given to candidate() and returned by cursor_index() are
    relative to the current page.
    """

    def __init__(self, candidates=None, page_size=DEFAULT_PAGE_SIZE):
        if page_size <= 0:
            logger.warning(f'Invalid page size {page_size}; using {DEFAULT_PAGE_SIZE}')
            page_size = DEFAULT_PAGE_SIZE
        self._candidates = list(candidates) if candidates else []
        self._page_size = page_size
        self._page = 0
        self._cursor = 0

    def __len__(self):
        return len(self._candidates)

    def __iter__(self):
        return iter(self._candidates)

    @property
    def page_size(self):
        return self._page_size

    @property
    def page(self):
        return self._page

    def empty(self):
        return not self._candidates

    def page_count(self):
        return (len(self._candidates) + self._page_size - 1) // self._page_size

    def page_candidates(self):
        start = self._page * self._page_size
        return self._candidates[start:start + self._page_size]

    def size(self):
        """Number of candidates on the current page."""
        return len(self.page_candidates())

    def candidate(self, index):
        return self.page_candidates()[index]

    def global_cursor_index(self):
        return self._cursor

    def set_global_cursor_index(self, index):
        if not self._candidates:
            return
        self._cursor = index % len(self._candidates)
        self._page = self._cursor // self._page_size

    def cursor_index(self):
        '''
        Cursor position on the current page, -1 when the cursor is on
        another page.
        '''
        index = self._cursor - self._page * self._page_size
        if 0 <= index < self.size():
            return index
        return -1

    def has_prev(self):
        return self._page > 0

    def has_next(self):
        return self._page + 1 < self.page_count()

    def prev_page(self):
        if not self.has_prev():
            return False
        self._page -= 1
        self._cursor = self._page * self._page_size
        return True

    def next_page(self):
        if not self.has_next():
            return False
        self._page += 1
        self._cursor = self._page * self._page_size
        return True

    def prev_candidate(self):
        self.set_global_cursor_index(self._cursor - 1)

    def next_candidate(self):
        self.set_global_cursor_index(self._cursor + 1)
