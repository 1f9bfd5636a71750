"""
Shift classifier

Decides which operational shift (morning / evening / night) a visit belongs
to. The wall-clock time of the visit decides outside the overlap zones;
inside them the inspector's declared home shift breaks the tie. Visits with
no usable time of day fall through an ordered chain of code and text
heuristics that always ends in a hard default.
"""
import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

SHIFT_CODES = {'1': 'morning', '2': 'evening', '3': 'night'}

DEFAULT_SHIFT = 'morning'

# Lao shift names always carry the ພາກ ("part of day") prefix; matching the
# bare word would hit personal names such as ຄຳ.
_TEXT_TOKENS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('morning', (
        'ພາກເຊົ້າ',  # morning
        'morning',
    )),
    ('evening', (
        'ພາກແລງ',  # evening
        'ພາກບ່າຍ',  # afternoon
        'evening',
        'afternoon',
    )),
    ('night', (
        'ພາກຄໍາ',  # night, nikhahit + aa
        'ພາກຄຳ',  # night, precomposed am
        'night',
    )),
)

_CODE_PATTERN_RE = re.compile(r'(?<!\d)([123])(?!\d)')
_CODE_FLOAT_RE = re.compile(r'^([123])(?:\.0+)?$')

# Minutes after midnight, inclusive bounds
MORNING_START = 6 * 60 + 30       # 06:30
MORNING_END = 13 * 60 + 29        # 13:29
EVENING_START = 14 * 60 + 31      # 14:31
EVENING_END = 21 * 60 + 29        # 21:29
NIGHT_START = 22 * 60 + 31        # 22:31
NIGHT_END = 5 * 60 + 29           # 05:29

# (first minute, last minute, default shift, shift a declaration can pick instead)
OVERLAP_ZONES = (
    (5 * 60 + 30, 6 * 60 + 29, 'night', 'morning'),
    (13 * 60 + 30, 14 * 60 + 30, 'evening', 'morning'),
    (21 * 60 + 30, 22 * 60 + 30, 'night', 'evening'),
)


@dataclass(frozen=True)
class ShiftClassification:
    """Classifier verdict"""
    shift: str
    strategy: str
    ambiguous: bool = False


@dataclass(frozen=True)
class _ClassifyInput:
    shift_code_raw: str
    inspector_name: str
    declared_shift: Optional[str]
    context_text: str


def shift_from_text(text) -> Optional[str]:
    """Find a shift-name token (Lao or English) anywhere in text"""
    if not text:
        return None
    lowered = str(text).lower()
    for shift, tokens in _TEXT_TOKENS:
        if any(token in lowered for token in tokens):
            return shift
    return None


def shift_from_exact_code(code) -> Optional[str]:
    """'1'/'2'/'3', also as spreadsheet numbers such as 2.0"""
    if code is None or isinstance(code, bool):
        return None
    if isinstance(code, (int, float)):
        code = str(int(code)) if float(code).is_integer() else str(code)
    match = _CODE_FLOAT_RE.match(str(code).strip())
    return SHIFT_CODES[match.group(1)] if match else None


def shift_from_code_pattern(code) -> Optional[str]:
    """A standalone 1/2/3 inside longer code text, e.g. 'ກະ 2'"""
    if not code:
        return None
    match = _CODE_PATTERN_RE.search(str(code))
    return SHIFT_CODES[match.group(1)] if match else None


def parse_declared_shift(declared) -> Optional[str]:
    """
    Interpret an inspector's declared home shift.

    Uses the same code and text rules as visit shift codes. Returns None
    when nothing matches, which the classifier treats as no declaration.
    """
    return (shift_from_exact_code(declared)
            or shift_from_code_pattern(declared)
            or shift_from_text(declared))


def minutes_of_day(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, (datetime, time)):
        return value.hour * 60 + value.minute
    return None


# ---------------------------------------------------------------------------
# Fallback chain: each step returns a shift or None, first answer wins
# ---------------------------------------------------------------------------

def _by_exact_code(data: _ClassifyInput) -> Optional[str]:
    return shift_from_exact_code(data.shift_code_raw)


def _by_code_pattern(data: _ClassifyInput) -> Optional[str]:
    return shift_from_code_pattern(data.shift_code_raw)


def _by_code_text(data: _ClassifyInput) -> Optional[str]:
    return shift_from_text(data.shift_code_raw)


def _by_context_text(data: _ClassifyInput) -> Optional[str]:
    return shift_from_text(data.inspector_name) or shift_from_text(data.context_text)


def _by_declared_shift(data: _ClassifyInput) -> Optional[str]:
    return data.declared_shift


FALLBACK_CHAIN: List[Tuple[str, Callable[[_ClassifyInput], Optional[str]]]] = [
    ('code-exact', _by_exact_code),
    ('code-pattern', _by_code_pattern),
    ('code-text', _by_code_text),
    ('context-text', _by_context_text),
    ('declared-shift', _by_declared_shift),
]


def _classify_by_time(minute: int, declared: Optional[str]) -> ShiftClassification:
    for first, last, default_shift, alternative in OVERLAP_ZONES:
        if first <= minute <= last:
            if declared == alternative:
                return ShiftClassification(alternative, 'overlap-declared')
            if declared == default_shift:
                return ShiftClassification(default_shift, 'overlap-declared')
            return ShiftClassification(default_shift, 'overlap-default', ambiguous=True)

    if MORNING_START <= minute <= MORNING_END:
        return ShiftClassification('morning', 'timestamp')
    if EVENING_START <= minute <= EVENING_END:
        return ShiftClassification('evening', 'timestamp')
    # Everything left is 22:31-23:59 or 00:00-05:29
    return ShiftClassification('night', 'timestamp')


def classify(timestamp, shift_code_raw=None, inspector_name=None,
             declared_home_shift=None, context_text=None) -> ShiftClassification:
    """
    Classify one visit.

    Args:
        timestamp: datetime (or time) of the visit, None when only the date is known
        shift_code_raw: shift code/text recorded on the log row
        inspector_name: name of the inspector who filed the log
        declared_home_shift: inspector's declared shift from the registry (raw)
        context_text: any other free text on the row, e.g. the route label

    Never raises; unresolvable cases come back as morning/'default'.
    """
    declared = parse_declared_shift(declared_home_shift)

    minute = minutes_of_day(timestamp)
    if minute is not None:
        return _classify_by_time(minute, declared)

    data = _ClassifyInput(
        shift_code_raw=str(shift_code_raw).strip() if shift_code_raw is not None else '',
        inspector_name=str(inspector_name or ''),
        declared_shift=declared,
        context_text=str(context_text or ''),
    )
    for strategy, step in FALLBACK_CHAIN:
        shift = step(data)
        if shift:
            return ShiftClassification(shift, strategy)

    return ShiftClassification(DEFAULT_SHIFT, 'default')


def log_strategy_distribution(classifications: List[ShiftClassification], label: str = '') -> None:
    """Debug-log how many visits each strategy decided"""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    counts = Counter(c.strategy for c in classifications)
    ambiguous = sum(1 for c in classifications if c.ambiguous)
    logger.debug(f"Shift strategies {label}: {dict(counts)} (ambiguous={ambiguous})")
