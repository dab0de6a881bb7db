# recanon/verification/code_preflight.py
# Preflight checks on snapshot code before it is sent to the renderer.
#
# The renderer supplies a fixed canvas. Code that calls createCanvas() is
# rejected remotely, so it is caught here first. Calls inside comments do
# not count.

import re
from dataclasses import dataclass

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"//[^\n]*")

CREATE_CANVAS_CALL: str = "createCanvas("


@dataclass(frozen=True)
class CanvasCheck:
    """
    valid is False when a createCanvas() call was found; line_number is then
    1-based and line_content is the stripped source line.
    """
    valid:        bool
    line_number:  int = 0
    line_content: str = ""


def _keep_newlines(match: "re.Match") -> str:
    return "\n" * match.group(0).count("\n")


def strip_comments(code: str) -> str:
    """
    Remove /* block */ and // line comments.

    Block comments are replaced by their newlines, so line numbers in the
    result match the original source.
    """
    without_blocks = _BLOCK_COMMENT.sub(_keep_newlines, code)
    return _LINE_COMMENT.sub("", without_blocks)


def validate_no_create_canvas(code: str) -> CanvasCheck:
    original_lines = code.split("\n")
    for index, line in enumerate(strip_comments(code).split("\n")):
        if CREATE_CANVAS_CALL in line:
            return CanvasCheck(
                valid=False,
                line_number=index + 1,
                line_content=original_lines[index].strip(),
            )
    return CanvasCheck(valid=True)
