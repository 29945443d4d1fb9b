from httpx import AsyncClient

from app.config import HTTP_TIMEOUT, USER_AGENT

HTTP = AsyncClient(
    headers={'User-Agent': USER_AGENT},
    timeout=HTTP_TIMEOUT.total_seconds(),
    follow_redirects=True,
)


def splitlines_trim(s: str) -> list[str]:
    """
    Split a string by lines, trim whitespace from each line, and ignore empty lines.

    >>> splitlines_trim('foo\\n\\nbar\\n')
    ['foo', 'bar']
    """
    return [strip for line in s.splitlines() if (strip := line.strip())]


def split_values(s: str, sep: str = ';') -> list[str]:
    """
    Split a multi-valued tag, trimming whitespace and ignoring empty values.

    >>> split_values('Big Apple; NYC;')
    ['Big Apple', 'NYC']
    """
    return [strip for value in s.split(sep) if (strip := value.strip())]
