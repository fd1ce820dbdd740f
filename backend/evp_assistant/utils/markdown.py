"""
Minimal markdown-to-HTML rendering for assistant answers.

Rules run in the order listed in ``INLINE_RULES``; order matters:
- the legacy ``【id†source】`` citation must be handled before the plain
  ``【source】`` form, which would otherwise swallow it;
- ``**bold**`` must run before ``*italic*``.
Bullet lines are then grouped into ``<ul>`` lists.
"""

import html
import re
from typing import List, Pattern, Tuple

Rule = Tuple[Pattern[str], str]

INLINE_RULES: Tuple[Rule, ...] = (
    (re.compile(r"【[^†】]*?†([^】]+)】"), r"<sup>[\1]</sup>"),
    (re.compile(r"【([^】]+)】"), r"<sup>[\1]</sup>"),
    (re.compile(r"^- ", re.MULTILINE), "\n- "),
    (re.compile(r"^• ", re.MULTILINE), "\n• "),
    (re.compile("2️⃣"), '<div class="mt-4 pt-2"></div>2️⃣'),
    (re.compile("3️⃣"), '<div class="mt-4 pt-2"></div>3️⃣'),
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"^# (.+)$", re.MULTILINE), r"<h1>\1</h1>"),
    (re.compile(r"^## (.+)$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^### (.+)$", re.MULTILINE), r"<h3>\1</h3>"),
)

_BULLET_RE = re.compile(r"^[-•]")
_EXTRA_BLANK_LINES_RE = re.compile(r"\n{3,}")


def _group_lists(lines: List[str]) -> List[str]:
    output = []
    in_list = False
    for line in lines:
        stripped = line.strip()
        if _BULLET_RE.match(stripped):
            item = f"<li>{stripped[1:].strip()}</li>"
            output.append(item if in_list else f"<ul>{item}")
            in_list = True
        elif in_list:
            output.append(f"</ul>{line}")
            in_list = False
        else:
            output.append(line)
    if in_list:
        output.append("</ul>")
    return output


def render_markdown(text: str) -> str:
    """
    Render an assistant answer to the HTML fragment the chat UI displays.

    Markup already present in the answer is escaped first, so only the
    tags produced by ``INLINE_RULES`` and list grouping reach the page.
    """
    text = html.escape(text, quote=False)
    for pattern, replacement in INLINE_RULES:
        text = pattern.sub(replacement, text)
    text = "\n".join(_group_lists(text.split("\n")))
    return _EXTRA_BLANK_LINES_RE.sub("\n\n", text)
