"""
Quantity parsing and scaling.

Ingredient quantities are free-form text: "1 1/2", "¾", "2-3", "a", "500",
"2 to 3 large", "pinch". `scale_quantity` multiplies the numeric part by a
scale factor (planned servings / recipe servings) and returns a new display
string, keeping any trailing text.

Recognised forms, tried in this order:
    mixed number      "1 1/2", "1½"
    simple fraction   "3/4"
    unicode fraction  "¾"
    range             "2-3", "1.5 - 2", "2 to 3"
    decimal/integer   "2", "0.5", ".5"

Scaled values are rounded half-up to two decimals and shown without
trailing zeros. Ranges scale both ends and are never collapsed.
"""

import re
from decimal import Decimal, ROUND_HALF_UP, localcontext
from fractions import Fraction
from numbers import Number
from typing import Any, NamedTuple, Optional

from recipes_shared.errors import QuantityParseError


DEFAULT_QUANTITY = '1'
DEFAULT_UNIT = 'item'

UNICODE_FRACTIONS = {
    '½': Fraction(1, 2),
    '⅓': Fraction(1, 3),
    '⅔': Fraction(2, 3),
    '¼': Fraction(1, 4),
    '¾': Fraction(3, 4),
    '⅕': Fraction(1, 5),
    '⅖': Fraction(2, 5),
    '⅗': Fraction(3, 5),
    '⅘': Fraction(4, 5),
    '⅙': Fraction(1, 6),
    '⅚': Fraction(5, 6),
    '⅛': Fraction(1, 8),
    '⅜': Fraction(3, 8),
    '⅝': Fraction(5, 8),
    '⅞': Fraction(7, 8),
}

# Pure-text quantities that take a count prefix when scaled by a whole factor
PLURAL_UNITS = {
    'pinch': 'pinches',
    'clove': 'cloves',
    'dash': 'dashes',
    'sprig': 'sprigs',
    'slice': 'slices',
}

_UNICODE_CLASS = '[' + ''.join(UNICODE_FRACTIONS) + ']'
_NUMBER = r'(?:\d+(?:\.\d+)?|\.\d+)'

_MIXED_RE = re.compile(r'^(\d+)\s+(\d+)\s*/\s*(\d+)')
_MIXED_UNICODE_RE = re.compile(r'^(\d+)\s*(' + _UNICODE_CLASS + ')')
_FRACTION_RE = re.compile(r'^(\d+)\s*/\s*(\d+)')
_UNICODE_RE = re.compile(r'^(' + _UNICODE_CLASS + ')')
_RANGE_RE = re.compile(r'^(' + _NUMBER + r')(?:\s*[-–]\s*|\s+to\s+)(' + _NUMBER + r')')
_DECIMAL_RE = re.compile(r'^(' + _NUMBER + ')')

_CENT = Decimal('0.01')


class ParsedQuantity(NamedTuple):
    """
    Result of parsing a quantity string.

    kind is 'single', 'range' or 'text'. For 'text' both values are None and
    `text` holds the whole (normalised) input; otherwise `text` is whatever
    followed the numeric part.
    """
    kind: str
    low: Optional[Fraction]
    high: Optional[Fraction]
    text: str


def normalize_quantity_text(quantity: str) -> str:
    """Lowercase, trim and turn a leading 'a '/'an ' article into '1 '."""
    text = quantity.strip().lower()
    if text.startswith('a ') and len(text) > 2:
        text = '1 ' + text[2:].lstrip()
    elif text.startswith('an ') and len(text) > 3:
        text = '1 ' + text[3:].lstrip()
    elif text in ('a', 'an'):
        text = '1'
    return text


def parse_quantity(quantity: str) -> ParsedQuantity:
    """
    Parse a quantity string into its numeric part and trailing text.

    Args:
        quantity: Free-form quantity such as '1 1/2 cups' or '2-3'

    Returns:
        ParsedQuantity; kind 'text' when no numeric form matched
    """
    text = normalize_quantity_text(quantity)

    match = _MIXED_RE.match(text)
    if match and int(match.group(3)) != 0:
        value = int(match.group(1)) + Fraction(int(match.group(2)), int(match.group(3)))
        return ParsedQuantity('single', value, None, text[match.end():].strip())

    match = _MIXED_UNICODE_RE.match(text)
    if match:
        value = int(match.group(1)) + UNICODE_FRACTIONS[match.group(2)]
        return ParsedQuantity('single', value, None, text[match.end():].strip())

    match = _FRACTION_RE.match(text)
    if match:
        if int(match.group(2)) == 0:
            return ParsedQuantity('text', None, None, text)
        value = Fraction(int(match.group(1)), int(match.group(2)))
        return ParsedQuantity('single', value, None, text[match.end():].strip())

    match = _UNICODE_RE.match(text)
    if match:
        value = UNICODE_FRACTIONS[match.group(1)]
        return ParsedQuantity('single', value, None, text[match.end():].strip())

    match = _RANGE_RE.match(text)
    if match:
        low = Fraction(match.group(1))
        high = Fraction(match.group(2))
        return ParsedQuantity('range', low, high, text[match.end():].strip())

    match = _DECIMAL_RE.match(text)
    if match:
        value = Fraction(match.group(1))
        return ParsedQuantity('single', value, None, text[match.end():].strip())

    return ParsedQuantity('text', None, None, text)


def round_quantity(value: Any) -> Decimal:
    """
    Round half-up to two decimal places.

    Precision grows with the size of the value, so very large amounts are
    rounded exactly rather than overflowing the default context.

    Raises:
        QuantityParseError: If the value is not a finite number
    """
    if isinstance(value, Fraction):
        whole_digits = len(str(abs(value.numerator) // value.denominator))
        with localcontext() as context:
            context.prec = max(28, whole_digits + 8)
            value = Decimal(value.numerator) / Decimal(value.denominator)
    elif not isinstance(value, Decimal):
        value = Decimal(str(value))

    if not value.is_finite():
        raise QuantityParseError(
            'Quantity must be a finite number',
            {'quantity': str(value)}
        )

    with localcontext() as context:
        context.prec = max(28, value.adjusted() + 4)
        return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def format_number(value: Any) -> str:
    """
    Display a number with at most two decimals and no trailing zeros.

    >>> format_number(Decimal('3.00'))
    '3'
    >>> format_number(Fraction(3, 2))
    '1.5'
    """
    rounded = round_quantity(value)
    with localcontext() as context:
        context.prec = max(28, rounded.adjusted() + 4)
        whole = rounded == rounded.to_integral_value()
    if whole:
        return str(int(rounded))
    return format(rounded, 'f').rstrip('0').rstrip('.')


def _coerce_factor(factor: Any) -> Fraction:
    if isinstance(factor, bool) or not isinstance(factor, Number):
        raise QuantityParseError(
            'Scale factor must be a number',
            {'factor': repr(factor)}
        )
    try:
        value = Fraction(factor)
    except (ValueError, OverflowError, TypeError):
        raise QuantityParseError(
            'Scale factor must be a finite number',
            {'factor': repr(factor)}
        )
    if value <= 0:
        raise QuantityParseError(
            'Scale factor must be positive',
            {'factor': repr(factor)}
        )
    return value


def _with_text(number: str, text: str) -> str:
    return f'{number} {text}' if text else number


def scale_quantity(quantity: Any, factor: Any) -> str:
    """
    Scale a quantity by a positive factor.

    A factor of exactly 1 returns the input text unchanged, whatever it is.
    Otherwise a blank quantity counts as '1', numeric forms are multiplied
    and reformatted (lowercased, with trailing text kept), and text that
    matches no numeric form is returned as given. The one exception is a
    bare pluralisable unit such as 'pinch' scaled by a whole factor, which
    becomes e.g. '3 pinches'.

    Args:
        quantity: Quantity text, a number, or None
        factor: Scale factor (planned servings / recipe servings)

    Returns:
        Scaled display string

    Raises:
        QuantityParseError: If the factor is not a positive finite number,
            or a numeric quantity is not finite
    """
    scale = _coerce_factor(factor)

    if quantity is None:
        original = ''
    elif isinstance(quantity, Number) and not isinstance(quantity, bool):
        original = format_number(quantity)
    else:
        original = str(quantity)

    if scale == 1:
        return original

    if not original.strip():
        original = DEFAULT_QUANTITY

    parsed = parse_quantity(original)

    if parsed.kind == 'range':
        low = format_number(parsed.low * scale)
        high = format_number(parsed.high * scale)
        return _with_text(f'{low}-{high}', parsed.text)

    if parsed.kind == 'single':
        return _with_text(format_number(parsed.low * scale), parsed.text)

    plural = PLURAL_UNITS.get(parsed.text)
    if plural and scale.denominator == 1 and scale > 1:
        return f'{scale.numerator} {plural}'

    return original
