"""Block measurement.

``layout_block`` lays a block out at a fixed content width and returns its
height together with the drawing operations the page renderer replays.
Measuring a block is simply taking the height of that layout, so a block is
always drawn with exactly the lines, fonts and spacing it was measured with.

All units are CSS pixels (96 per inch); font sizes are in pixels too, which
keeps reportlab's ``stringWidth`` results in the same unit.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from .. import config
from ..document import Party, StyleConfig
from ..exceptions import MeasurementUnavailable
from .blocks import ContentBlock, Heading, MilestoneItem, Paragraph, PartyPair, PaymentRow, SignatureBlock
from .formatting import format_currency, format_date, format_percentage
from .styles import ResolvedStyle, resolve_style, style_defaults

logger = logging.getLogger(__name__)


HEADING_MARGIN = {1: 8.0, 2: 16.0, 3: 8.0}
DIVIDER_SPACE = 32.0
PARAGRAPH_MARGIN = 12.0
SUBTITLE_MARGIN = 24.0
PARTY_GAP = 32.0
PARTY_MARGIN = 16.0
ROW_GAP = 4.0
MILESTONE_BAR = 4.0
MILESTONE_INDENT = 16.0
MILESTONE_PADDING = 4.0
MILESTONE_MARGIN = 12.0
PAYMENT_MARGIN = 8.0
SIGNATURE_WIDTH = 280.0
SIGNATURE_BOX = 80.0
SIGNATURE_IMAGE = 64.0
SIGNATURE_MARGIN = 24.0


# -------------------- Drawing operations --------------------
@dataclass(frozen=True)
class TextOp:
    x: float
    baseline: float
    text: str
    font: str
    size: float
    color: str


@dataclass(frozen=True)
class RuleOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float = 1.0


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    w: float
    h: float
    color: str


@dataclass(frozen=True)
class ImageOp:
    ref: str
    x: float
    y: float
    w: float
    h: float


DrawOp = Union[TextOp, RuleOp, RectOp, ImageOp]


@dataclass(frozen=True)
class BlockLayout:
    height: float
    ops: Tuple[DrawOp, ...]


# -------------------- Typography backend --------------------
Token = Optional[Tuple[str, str]]  # (word, font); None is a hard line break


class Typography:
    """
    Font registry and text metrics.

    ``prepare()`` is the readiness barrier. Each face in the style defaults
    is registered from the first TrueType file found on its candidate list;
    a face with no file falls back to its built-in PDF font, which only
    covers Latin-1 text. Metrics requested before ``prepare()`` raise
    ``MeasurementUnavailable`` rather than returning a zero width.

    ``face_for`` picks, per word, the first face on the fallback chain whose
    glyph table covers the whole word, so a Devanagari name or a rupee sign
    is drawn with a font that has it instead of as notdef boxes.
    """

    def __init__(self, defaults: Optional[dict] = None):
        self._defaults = defaults
        self._ready = False
        self._fallbacks: Dict[str, List[str]] = {}
        self._missing: Set[Tuple[str, str]] = set()

    @property
    def ready(self) -> bool:
        return self._ready

    def prepare(self) -> "Typography":
        if self._ready:
            return self
        defaults = self._defaults or style_defaults()
        faces = defaults.get("faces") or {}
        registered = {name for name, face in faces.items() if self._register_face(name, face)}
        self._fallbacks = {
            name: [fallback for fallback in face.get("fallbacks") or () if fallback in registered]
            for name, face in faces.items()
        }
        for family in defaults["font_families"].values():
            for font_name in (family["regular"], family["bold"]):
                pdfmetrics.getFont(font_name)
        self._ready = True
        return self

    def _register_face(self, name: str, face: dict) -> bool:
        if name in pdfmetrics.getRegisteredFontNames():
            return True
        for candidate in face.get("files") or ():
            path = _font_path(candidate)
            if not path.exists():
                continue
            try:
                pdfmetrics.registerFont(TTFont(name, str(path)))
            except TTFError as exc:
                logger.warning("Could not load font %s from %s: %s", name, path, exc)
                continue
            logger.debug("Registered font %s from %s", name, path)
            return True
        builtin = face.get("builtin")
        if builtin:
            logger.warning(
                "No TrueType file found for font %s; falling back to %s, non-Latin text will not render",
                name,
                builtin,
            )
            pdfmetrics.registerFont(pdfmetrics.Font(name, builtin, "WinAnsiEncoding"))
            return True
        logger.info("Font %s not available", name)
        return False

    def covers(self, text: str, font: str) -> bool:
        """True when ``font`` has a glyph for every character of ``text``."""
        face = pdfmetrics.getFont(font)
        if isinstance(face, TTFont):
            glyphs = face.face.charToGlyph
            return all(ord(ch) in glyphs for ch in text)
        try:
            text.encode("cp1252")
        except UnicodeEncodeError:
            return False
        return True

    def face_for(self, word: str, font: str) -> str:
        if not self._ready:
            raise MeasurementUnavailable()
        if self.covers(word, font):
            return font
        for fallback in self._fallbacks.get(font, ()):
            if self.covers(word, fallback):
                return fallback
        if (font, word) not in self._missing:
            self._missing.add((font, word))
            logger.warning("No registered font has glyphs for %r; drawing it with %s", word, font)
        return font

    def string_width(self, text: str, font: str, size: float) -> float:
        if not self._ready:
            raise MeasurementUnavailable()
        return pdfmetrics.stringWidth(text, font, size)

    def wrap(self, words: Sequence[Tuple[str, str]], size: float, max_width: float) -> List[List[Tuple[str, str]]]:
        """
        Word wrap one paragraph. A single word wider than ``max_width`` gets
        its own line rather than being broken.
        """
        lines: List[List[Tuple[str, str]]] = []
        cur: List[Tuple[str, str]] = []
        cur_w = 0.0
        for word, font in words:
            word_w = self.string_width(word, font, size)
            add = word_w + (self.string_width(" ", cur[-1][1], size) if cur else 0.0)
            if cur and cur_w + add > max_width:
                lines.append(cur)
                cur, cur_w = [(word, font)], word_w
                continue
            cur.append((word, font))
            cur_w += add
        lines.append(cur)
        return lines

    def line_width(self, line: Sequence[Tuple[str, str]], size: float) -> float:
        width = 0.0
        prev_font = None
        for word, font in line:
            if prev_font is not None:
                width += self.string_width(" ", prev_font, size)
            width += self.string_width(word, font, size)
            prev_font = font
        return width


def _font_path(candidate: str) -> Path:
    path = Path(candidate)
    return path if path.is_absolute() else config.BASE_DIR / path


_default_typography = Typography()


def default_typography() -> Typography:
    return _default_typography


def tokens(text: str, font: str) -> List[Token]:
    out: List[Token] = []
    for i, line in enumerate((text or "").splitlines()):
        if i:
            out.append(None)
        out.extend((word, font) for word in line.split())
    return out


# -------------------- Text placement --------------------
def _baseline(line_top: float, line_height: float, size: float) -> float:
    return line_top + (line_height - size) / 2 + size * 0.8


def _split_paragraphs(toks: Sequence[Token]) -> List[List[Tuple[str, str]]]:
    paragraphs: List[List[Tuple[str, str]]] = [[]]
    for token in toks:
        if token is None:
            paragraphs.append([])
        else:
            paragraphs[-1].append(token)
    return paragraphs


def _place_lines(
    typo: Typography,
    ops: List[DrawOp],
    toks: Sequence[Token],
    x: float,
    top: float,
    width: float,
    size: float,
    line_height: float,
    color: str,
    align: str,
) -> float:
    """Wrap ``toks`` into ``width`` and append text ops. Returns the height used."""
    toks = [None if token is None else (token[0], typo.face_for(*token)) for token in toks]
    n = 0
    for words in _split_paragraphs(toks):
        lines = typo.wrap(words, size, width)
        for i, line in enumerate(lines):
            line_top = top + n * line_height
            n += 1
            if not line:
                continue
            baseline = _baseline(line_top, line_height, size)
            # the last line of a paragraph is never stretched
            if align == "justify" and i < len(lines) - 1 and len(line) > 1:
                words_w = sum(typo.string_width(word, font, size) for word, font in line)
                gap = (width - words_w) / (len(line) - 1)
                xx = x
                for word, font in line:
                    ops.append(TextOp(xx, baseline, word, font, size, color))
                    xx += typo.string_width(word, font, size) + gap
                continue
            line_w = typo.line_width(line, size)
            if align == "center":
                xx = x + (width - line_w) / 2
            elif align == "right":
                xx = x + width - line_w
            else:
                xx = x
            for run_text, run_font in _runs(line):
                ops.append(TextOp(xx, baseline, run_text, run_font, size, color))
                xx += typo.string_width(run_text + " ", run_font, size)
    return n * line_height


def _runs(line: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    runs: List[Tuple[str, str]] = []
    for word, font in line:
        if runs and runs[-1][1] == font:
            runs[-1] = (runs[-1][0] + " " + word, font)
        else:
            runs.append((word, font))
    return runs


def _labelled(label: str, value: str, style: ResolvedStyle, bold_value: bool = False) -> List[Token]:
    toks: List[Token] = []
    if label:
        toks.extend(tokens(f"{label}:", style.font_name_bold))
    toks.extend(tokens(value, style.font_name_bold if bold_value else style.font_name))
    return toks


# -------------------- Block layouts --------------------
def _layout_heading(block: Heading, width: float, style: ResolvedStyle, typo: Typography) -> BlockLayout:
    ops: List[DrawOp] = []
    top = 0.0
    if block.divider:
        ops.append(RuleOp(0, DIVIDER_SPACE / 2, width, DIVIDER_SPACE / 2, style.rule_color))
        top = DIVIDER_SPACE
    size = style.sub_header_font_size if block.level >= 3 else style.header_font_size
    used = _place_lines(
        typo,
        ops,
        tokens(block.text, style.font_name_bold),
        0,
        top,
        width,
        size,
        size * style.heading_line_spacing,
        style.header_color,
        style.header_alignment,
    )
    return BlockLayout(top + used + HEADING_MARGIN.get(block.level, 8.0), tuple(ops))


def _layout_paragraph(block: Paragraph, width: float, style: ResolvedStyle, typo: Typography) -> BlockLayout:
    ops: List[DrawOp] = []
    if block.section_id == "header":
        size = style.sub_header_font_size
        align = style.header_alignment
        margin = SUBTITLE_MARGIN
    else:
        size = style.content_font_size
        align = style.content_alignment
        margin = PARAGRAPH_MARGIN
    color = style.muted_color if block.muted else style.content_color
    used = _place_lines(
        typo,
        ops,
        _labelled(block.label, block.text, style, bold_value=block.emphasis),
        0,
        0,
        width,
        size,
        size * style.line_spacing,
        color,
        align,
    )
    return BlockLayout(used + margin, tuple(ops))


def _party_rows(party: Party, organization_label: str) -> List[Tuple[str, str]]:
    rows = [("Name", party.name)]
    if party.organization:
        rows.append((organization_label, party.organization))
    if party.address:
        rows.append(("Address", party.address))
    if party.email:
        rows.append(("Email", party.email))
    if party.phone:
        rows.append(("Phone", party.phone))
    return rows


def _layout_party_column(
    title: str,
    rows: List[Tuple[str, str]],
    x: float,
    width: float,
    style: ResolvedStyle,
    typo: Typography,
    ops: List[DrawOp],
) -> float:
    sub = style.sub_header_font_size
    y = _place_lines(
        typo, ops, tokens(title, style.font_name_bold), x, 0, width, sub,
        sub * style.heading_line_spacing, style.header_color, "left",
    )
    y += ROW_GAP * 2
    size = style.content_font_size
    for label, value in rows:
        y += _place_lines(
            typo, ops, _labelled(label, value, style), x, y, width, size,
            size * style.line_spacing, style.content_color, "left",
        )
        y += ROW_GAP
    return y


def _layout_party_pair(block: PartyPair, width: float, style: ResolvedStyle, typo: Typography) -> BlockLayout:
    ops: List[DrawOp] = []
    col_w = (width - PARTY_GAP) / 2
    heights = [0.0]
    if not block.provider.is_empty():
        heights.append(
            _layout_party_column(
                "SERVICE PROVIDER", _party_rows(block.provider, "Business"), 0, col_w, style, typo, ops
            )
        )
    if not block.counterparty.is_empty():
        heights.append(
            _layout_party_column(
                "CLIENT", _party_rows(block.counterparty, "Company"), col_w + PARTY_GAP, col_w, style, typo, ops
            )
        )
    return BlockLayout(max(heights) + PARTY_MARGIN, tuple(ops))


def _layout_milestone(block: MilestoneItem, width: float, style: ResolvedStyle, typo: Typography) -> BlockLayout:
    milestone = block.milestone
    ops: List[DrawOp] = []
    x = MILESTONE_INDENT
    inner = width - MILESTONE_INDENT
    size = style.content_font_size
    small = max(8.0, size - 2)

    y = MILESTONE_PADDING
    y += _place_lines(
        typo, ops, tokens(milestone.title, style.font_name_bold), x, y, inner, size,
        size * style.line_spacing, style.content_color, "left",
    )
    details: List[Tuple[List[Token], str]] = []
    if milestone.description.strip():
        details.append((tokens(milestone.description, style.font_name), style.muted_color))
    if milestone.due_date:
        details.append((_labelled("Due", format_date(milestone.due_date), style), style.muted_color))
    if milestone.amount:
        details.append(
            (_labelled("Amount", format_currency(milestone.amount), style, bold_value=True), style.content_color)
        )
    for toks, color in details:
        y += ROW_GAP
        y += _place_lines(typo, ops, toks, x, y, inner, small, small * style.line_spacing, color, "left")
    y += MILESTONE_PADDING

    ops.insert(0, RectOp(0, 0, MILESTONE_BAR, y, style.rule_color))
    return BlockLayout(y + MILESTONE_MARGIN, tuple(ops))


def _layout_payment_row(block: PaymentRow, width: float, style: ResolvedStyle, typo: Typography) -> BlockLayout:
    entry = block.entry
    ops: List[DrawOp] = []
    size = style.content_font_size
    small = max(8.0, size - 2)
    line_height = size * style.line_spacing

    if block.resolved_amount is not None:
        amount = format_currency(block.resolved_amount)
    else:
        amount = format_percentage(entry.percentage)
    amount_font = typo.face_for(amount, style.font_name_bold)
    amount_w = typo.string_width(amount, amount_font, size)
    description = entry.description.strip() or f"Payment {block.index + 1}"

    y = _place_lines(
        typo, ops, tokens(description, style.font_name), 0, 0, max(10.0, width - amount_w - 16), size,
        line_height, style.content_color, "left",
    )
    ops.append(
        TextOp(width - amount_w, _baseline(0, line_height, size), amount, amount_font, size, style.content_color)
    )

    detail = f"{format_percentage(entry.percentage)} of total amount"
    if entry.due_date:
        detail += f" • Due: {format_date(entry.due_date)}"
    y += _place_lines(
        typo, ops, tokens(detail, style.font_name), 0, y, width, small,
        small * style.line_spacing, style.muted_color, "left",
    )
    return BlockLayout(y + PAYMENT_MARGIN, tuple(ops))


def _layout_signature(block: SignatureBlock, width: float, style: ResolvedStyle, typo: Typography) -> BlockLayout:
    ops: List[DrawOp] = []
    box_w = min(SIGNATURE_WIDTH, width)
    if block.image_ref:
        ops.append(ImageOp(block.image_ref, 0, SIGNATURE_BOX - SIGNATURE_IMAGE - 4, box_w, SIGNATURE_IMAGE))
    ops.append(RuleOp(0, SIGNATURE_BOX, box_w, SIGNATURE_BOX, style.muted_color, 2.0))

    size = style.content_font_size
    line_height = size * style.line_spacing
    y = SIGNATURE_BOX + ROW_GAP * 4
    title = "SERVICE PROVIDER" if block.party == "provider" else "CLIENT"
    lines = [
        (tokens(title, style.font_name_bold), style.header_color),
        (tokens(block.name or " ", style.font_name), style.content_color),
        (_labelled("Date", format_date(block.date), style), style.muted_color),
    ]
    for toks, color in lines:
        y += _place_lines(typo, ops, toks, 0, y, box_w, size, line_height, color, "center")
    return BlockLayout(y + SIGNATURE_MARGIN, tuple(ops))


_LAYOUTS = {
    Heading: _layout_heading,
    Paragraph: _layout_paragraph,
    PartyPair: _layout_party_pair,
    MilestoneItem: _layout_milestone,
    PaymentRow: _layout_payment_row,
    SignatureBlock: _layout_signature,
}


def layout_block(
    block: ContentBlock,
    content_width_px: float,
    style: ResolvedStyle,
    typography: Optional[Typography] = None,
) -> BlockLayout:
    typo = typography or default_typography()
    if not typo.ready:
        raise MeasurementUnavailable()
    fn = _LAYOUTS.get(type(block))
    if fn is None:
        raise TypeError(f"Unsupported block type: {type(block).__name__}")
    return fn(block, float(content_width_px), style, typo)


def measure(
    block: ContentBlock,
    content_width_px: float,
    style: ResolvedStyle,
    typography: Optional[Typography] = None,
) -> float:
    """Total vertical footprint of ``block`` in px, trailing margin included."""
    return layout_block(block, content_width_px, style, typography).height


class BlockMeasurer:
    """
    The measuring callable handed to the paginator.

    Resolves each block's style from the document's ``StyleConfig`` and
    keeps the layouts it computed so the renderer can replay them.
    """

    def __init__(
        self,
        style_config: StyleConfig,
        content_width_px: float,
        typography: Optional[Typography] = None,
    ):
        self.style_config = style_config
        self.content_width_px = float(content_width_px)
        self.typography = typography or default_typography()
        self._layouts: Dict[ContentBlock, BlockLayout] = {}

    def style_for(self, block: ContentBlock) -> ResolvedStyle:
        return resolve_style(self.style_config, block.section_id)

    def layout(self, block: ContentBlock) -> BlockLayout:
        cached = self._layouts.get(block)
        if cached is None:
            cached = layout_block(block, self.content_width_px, self.style_for(block), self.typography)
            self._layouts[block] = cached
        return cached

    def __call__(self, block: ContentBlock) -> float:
        return self.layout(block).height
