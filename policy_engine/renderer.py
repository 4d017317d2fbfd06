"""
policy_engine/renderer.py

Boxed diagnostic for blocked package-manager invocations.
──────────────────────────────────────────────────────────
Scripts scrape this output, so the field order and wording are fixed:

    ╔═════════════════════════════════════════════════════════════════╗
    ║                                                                 ║
    ║ ❌  Package Manager Error                                       ║
    ║                                                                 ║
    ║ 🔍  Detected: "npm" (via explicit command name)                 ║
    ║ 📦  Required: "pnpm"                                            ║
    ║ 🚫  Command: npm install                                        ║
    ║                                                                 ║
    ║ 💡  Solutions:                                                  ║
    ║    1. Install pnpm: npm install -g pnpm                         ║
    ║    2. Use pnpm commands: pnpm install, pnpm run build, etc.     ║
    ║    3. Run: pnpm run check-pm (to verify)                        ║
    ║                                                                 ║
    ║ 🔗  Learn more: https://pnpm.io/installation                    ║
    ║                                                                 ║
    ╚═════════════════════════════════════════════════════════════════╝

Emoji occupy two terminal columns, so padding is computed from display
width rather than len(). Only the glyphs listed in WIDE_GLYPHS count as
two columns; everything else counts as one.
"""

from typing import Dict, Iterator, List, Tuple

from .base import Command, ToolIdentity, VerdictResult

# Columns between "║ " and " ║".
CONTENT_WIDTH = 63

ELLIPSIS = "…"

# Multi-codepoint entries (emoji + VS16) are matched before single glyphs.
WIDE_GLYPHS: Tuple[str, ...] = (
    "⚠️", "ℹ️",
    "🔍", "📦", "🚫", "💡", "🔗", "❌", "✅", "🎉", "🚀", "🔄",
)

_WIDE_SEQUENCES = tuple(g for g in WIDE_GLYPHS if len(g) > 1)
_WIDE_CHARS = frozenset(g for g in WIDE_GLYPHS if len(g) == 1)

# (install hint, documentation URL) per required tool.
TOOL_GUIDES: Dict[ToolIdentity, Tuple[str, str]] = {
    ToolIdentity.PNPM: ("npm install -g pnpm", "https://pnpm.io/installation"),
    ToolIdentity.YARN: ("npm install -g yarn", "https://yarnpkg.com/getting-started/install"),
    ToolIdentity.NPM: ("bundled with Node.js", "https://docs.npmjs.com/cli"),
    ToolIdentity.BUN: ("npm install -g bun", "https://bun.sh/docs/installation"),
}


def _glyphs(text: str) -> Iterator[Tuple[str, int]]:
    """Yield (glyph, display width) pairs."""
    i = 0
    while i < len(text):
        for seq in _WIDE_SEQUENCES:
            if text.startswith(seq, i):
                yield seq, 2
                i += len(seq)
                break
        else:
            ch = text[i]
            yield ch, 2 if ch in _WIDE_CHARS else 1
            i += 1


def display_width(text: str) -> int:
    return sum(width for _, width in _glyphs(text))


def fit(text: str, width: int = CONTENT_WIDTH) -> str:
    """Truncate `text` with an ellipsis so it occupies at most `width` columns."""
    if display_width(text) <= width:
        return text
    kept: List[str] = []
    used = 0
    for glyph, glyph_width in _glyphs(text):
        if used + glyph_width > width - 1:
            break
        kept.append(glyph)
        used += glyph_width
    return "".join(kept) + ELLIPSIS


def printable(text: str) -> str:
    """Replace control and other non-printable characters with their escapes."""
    if text.isprintable():
        return text
    return "".join(
        ch if ch.isprintable() else ch.encode("unicode_escape").decode("ascii")
        for ch in text
    )


def box_line(text: str) -> str:
    text = fit(printable(text))
    padding = CONTENT_WIDTH - display_width(text)
    return f"║ {text}{' ' * padding} ║"


def top_border() -> str:
    return "╔" + "═" * (CONTENT_WIDTH + 2) + "╗"


def bottom_border() -> str:
    return "╚" + "═" * (CONTENT_WIDTH + 2) + "╝"


def remediation_steps(required: ToolIdentity) -> List[str]:
    install_hint, _ = TOOL_GUIDES[required]
    tool = required.value
    return [
        f"1. Install {tool}: {install_hint}",
        f"2. Use {tool} commands: {tool} install, {tool} run build, etc.",
        f"3. Run: {tool} run check-pm (to verify)",
    ]


def suggested_command(command: Command, required: ToolIdentity) -> str:
    """The same invocation, issued with the required tool."""
    return Command(required.value, command.args).display()


def render(result: VerdictResult) -> str:
    """
    Format a BLOCK verdict as the boxed diagnostic.

    Raises:
        ValueError: if `result` is not a BLOCK verdict.
    """
    if not result.is_blocked:
        raise ValueError(f"cannot render a {result.verdict.value} verdict")

    required = result.required_tool
    evidence = result.evidence
    _, docs_url = TOOL_GUIDES[required]

    content = [
        "",
        "❌  Package Manager Error",
        "",
        f'🔍  Detected: "{evidence.identity.value}" (via {evidence.method})',
        f'📦  Required: "{required.value}"',
    ]
    if result.command is not None:
        content.append(f"🚫  Command: {result.command.display()}")
    content += ["", "💡  Solutions:"]
    content += [f"   {step}" for step in remediation_steps(required)]
    content += ["", f"🔗  Learn more: {docs_url}", ""]

    return "\n".join([top_border(), *(box_line(t) for t in content), bottom_border()])
