"""
DEPENDS.txt parsing.

Grammar, one directive per line:

    package <name>       set the owning package for following entries
    hard <names...>      hard dependencies
    soft <names...>      soft dependencies
    <names...>           same as `hard`
    # comment            ignored, also allowed after a directive

Malformed lines are reported as warnings and skipped; parsing never
aborts on a single bad line.
"""

import re
from typing import Iterator, Tuple, Optional

from .config import logger
from .domain.dependency import Dependency, Directive

_COMMENT_RE = re.compile(r'#.*')
_DIRECTIVE_RE = re.compile(r'^(?P<type>package|hard|soft)(?:$|\s+(?P<args>.*))$')
_WHITESPACE_RE = re.compile(r'\s+')


def lines(text: str) -> Iterator[Tuple[str, int]]:
    """Yield non-empty, comment-free lines with their 1-based numbers."""
    for index, line in enumerate(text.split('\n'), start=1):
        line = _COMMENT_RE.sub('', line.strip()).strip()
        if line:
            yield line, index


def parse(text: str) -> Iterator[Dependency]:
    """
    Parse the contents of a DEPENDS.txt file.

    Args:
        text: Full file text

    Yields:
        Dependency records in file order
    """
    package: Optional[str] = None

    for line, lineno in lines(text):
        match = _DIRECTIVE_RE.match(line)
        if match:
            directive = Directive(match.group('type'))
            args = (match.group('args') or '').strip()
        else:
            directive = Directive.HARD
            args = line

        if directive is Directive.PACKAGE:
            if not args or _WHITESPACE_RE.search(args):
                logger.warning(
                    f"line {lineno}: `package` directive must have exactly one argument, "
                    f"but given: {args!r}"
                )
                package = None
            else:
                package = args
            continue

        names = [name for name in _WHITESPACE_RE.split(args) if name]
        if not names:
            logger.warning(
                f"line {lineno}: `{directive.value}` directive requires at least one package name"
            )
            continue

        for name in names:
            yield Dependency(name=name, type=directive.dependency_type, package=package)


def parse_file(path) -> Iterator[Dependency]:
    """Parse a DEPENDS.txt file from disk."""
    with open(path, 'r', encoding='utf-8') as f:
        content = f.read()
    yield from parse(content)
