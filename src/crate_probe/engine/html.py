"""Render highlighted ranges as a standalone HTML fragment."""

from collections.abc import Sequence
from html import escape

from crate_probe.models import HighlightedRange

STYLE = """
<style>
body                { margin: 0; }
pre                 { color: #DCDCCC; background: #3F3F3F; font-size: 22px; padding: 0.4em; }

.lifetime           { color: #DFAF8F; font-style: italic; }
.comment            { color: #7F9F7F; }
.attribute          { color: #94BFF3; }
.function           { color: #93E0E3; }
.method             { color: #93E0E3; }
.macro              { color: #94BFF3; }
.property           { color: #94BFF3; }
.type               { color: #7CB8BB; }
.builtin            { color: #8CD0D3; }
.parameter          { color: #94BFF3; }
.string             { color: #CC9393; }
.number             { color: #BFEBBF; }
.constant           { color: #F0DFAF; }
.keyword            { color: #F0DFAF; font-weight: bold; }
.variable           { color: #DCDCCC; }
</style>
"""


def rainbow_color(hashed: int) -> str:
    hue = hashed % 360
    saturation = 40 + (hashed >> 16) % 50
    lightness = 70 + (hashed >> 32) % 20
    return f"hsl({hue},{saturation}%,{lightness}%)"


def render_html(text: str, ranges: Sequence[HighlightedRange], rainbow: bool) -> str:
    """Wrap *text* in ``<pre><code>``, one ``<span>`` per highlighted range.

    Ranges are byte offsets into the UTF-8 encoding of *text*. Overlapping
    ranges after the first are dropped. With *rainbow*, bindings also get an
    inline colour derived from their hash; their classes are unchanged.
    """
    source = text.encode("utf-8")

    def chunk(start: int, end: int) -> str:
        return escape(source[start:end].decode("utf-8", errors="replace"), quote=False)

    parts = [STYLE, "<pre><code>"]
    pos = 0
    for hl in sorted(ranges, key=lambda r: (r.range.start, r.range.end)):
        if hl.range.start < pos:
            continue
        parts.append(chunk(pos, hl.range.start))
        classes = hl.tag.replace(".", " ")
        body = chunk(hl.range.start, hl.range.end)
        if rainbow and hl.binding_hash is not None:
            parts.append(
                f'<span class="{classes}" data-binding-hash="{hl.binding_hash}" '
                f'style="color: {rainbow_color(hl.binding_hash)};">{body}</span>'
            )
        else:
            parts.append(f'<span class="{classes}">{body}</span>')
        pos = hl.range.end
    parts.append(chunk(pos, len(source)))
    parts.append("</code></pre>")
    return "".join(parts)
