from cqllens.parsing.directives import find_directives, resolve_directive
from cqllens.parsing.segmenter import extract_table_path, join_statements, segment, strip_comments

__all__ = [
    "extract_table_path",
    "find_directives",
    "join_statements",
    "resolve_directive",
    "segment",
    "strip_comments",
]
