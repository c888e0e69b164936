"""Values available to capability bodies besides their parameters.

Capability bodies only ever call ``HiveCallable`` objects: builtins defined
here, arrow functions built by the interpreter, methods looked up on strings,
lists and dicts, and members explicitly exposed by runtime objects. Plain
Python callables are never reachable from HiveLang code.
"""

from __future__ import annotations

import base64
import binascii
import inspect
import json
import math
import random
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import quote

from pydantic import BaseModel

from .errors import EvaluationError

MAX_RANGE = 1_000_000


class HiveCallable:
    """A value HiveLang code may call."""

    name = "<function>"

    async def call(self, args: Sequence[Any]) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError


class Builtin(HiveCallable):
    """Wrap a Python function (sync or async) as a HiveLang callable."""

    def __init__(self, fn: Callable[..., Any], name: Optional[str] = None) -> None:
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "<builtin>")

    async def call(self, args: Sequence[Any]) -> Any:
        try:
            result = self._fn(*args)
        except TypeError as exc:
            raise EvaluationError(f"bad arguments for {self.name}(): {exc}") from exc
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"Builtin({self.name})"


class Namespace:
    """A read-only bag of builtins such as ``JSON`` or ``Math``.

    A namespace may also be callable (``Date()``) and constructible
    (``new Date(...)``).
    """

    def __init__(
        self,
        name: str,
        members: Mapping[str, Any],
        *,
        call: Optional[Builtin] = None,
        construct: Optional[Builtin] = None,
    ) -> None:
        self.name = name
        self._members = dict(members)
        self.call = call
        self.construct = construct

    @property
    def exposed_members(self) -> frozenset:
        return frozenset(self._members)

    def member(self, name: str) -> Any:
        return self._members[name]

    def __repr__(self) -> str:
        return f"Namespace({self.name})"


async def call_value(fn: Any, args: Sequence[Any]) -> Any:
    """Call ``fn`` with ``args`` if it is a HiveLang callable."""
    if isinstance(fn, HiveCallable):
        return await fn.call(args)
    if isinstance(fn, Namespace) and fn.call is not None:
        return await fn.call.call(args)
    raise EvaluationError(f"{type_name(fn)} is not a function")


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, HiveDate):
        return value.to_iso_string()
    if isinstance(value, tuple):
        return list(value)
    return None


def to_json(value: Any, indent: Optional[int] = None) -> str:
    if indent:
        return json.dumps(value, indent=indent, ensure_ascii=False, default=_json_default)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_json_default)


def to_text(value: Any) -> str:
    """Convert a value to text the way string concatenation does."""
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, HiveDate):
        return value.to_iso_string()
    if isinstance(value, (list, dict, BaseModel)):
        return to_json(value)
    return f"[{type_name(value)}]"


def to_number(value: Any) -> Any:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return None
    return None


_INT_PREFIX = re.compile(r"^\s*([+-]?)([0-9a-zA-Z]+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _radix(radix: Any) -> Optional[int]:
    """Radix 0 or a non-number means 10; outside 2..36 there is no valid radix."""
    try:
        base = int(radix) if radix else 10
    except (TypeError, ValueError, OverflowError):
        return 10
    if base == 0:
        return 10
    return base if 2 <= base <= 36 else None


def parse_int(value: Any, radix: Any = 10) -> Optional[int]:
    """Parse the leading integer of ``value``; ``None`` when there is none."""
    if isinstance(value, bool):
        value = to_text(value)
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    base = _radix(radix)
    if base is None:
        return None
    match = _INT_PREFIX.match(to_text(value))
    if match is None:
        return None
    digits = ""
    for ch in match.group(2).lower():
        if ch not in _DIGITS[:base]:
            break
        digits += ch
    if not digits:
        return None
    number = int(digits, base)
    return -number if match.group(1) == "-" else number


def parse_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    match = _FLOAT_PREFIX.match(to_text(value))
    if match is None:
        return None
    return float(match.group(1))


def btoa(value: Any) -> str:
    return base64.b64encode(to_text(value).encode("utf-8")).decode("ascii")


def atob(value: Any) -> str:
    try:
        return base64.b64decode(to_text(value), validate=True).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as exc:
        raise EvaluationError(f"atob(): invalid base64 input: {exc}") from exc


def encode_uri_component(value: Any) -> str:
    return quote(to_text(value), safe="-_.!~*'()")


def hive_range(*args: Any) -> List[int]:
    bounds = [int(a) for a in args]
    values = range(*bounds)
    if len(values) > MAX_RANGE:
        raise EvaluationError(f"range() of {len(values)} items exceeds the limit of {MAX_RANGE}")
    return list(values)


def hive_len(value: Any) -> int:
    if isinstance(value, (str, list, dict)):
        return len(value)
    raise EvaluationError(f"len() of {type_name(value)}")


# ---------------------------------------------------------------------------
# JSON / Math / Object
# ---------------------------------------------------------------------------


def json_stringify(value: Any, replacer: Any = None, indent: Any = None) -> str:
    return to_json(value, int(indent) if indent else None)


def json_parse(text: Any) -> Any:
    try:
        return json.loads(to_text(text))
    except ValueError as exc:
        raise EvaluationError(f"JSON.parse(): {exc}") from exc


def _math_round(value: Any) -> int:
    return math.floor(value + 0.5)


def _math_min(*values: Any) -> Any:
    return min(values) if values else math.inf


def _math_max(*values: Any) -> Any:
    return max(values) if values else -math.inf


def _require_object(fn_name: str, value: Any) -> Dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if not isinstance(value, dict):
        raise EvaluationError(f"Object.{fn_name}() expects an object, got {type_name(value)}")
    return value


def object_keys(value: Any) -> List[str]:
    return list(_require_object("keys", value).keys())


def object_values(value: Any) -> List[Any]:
    return list(_require_object("values", value).values())


def object_entries(value: Any) -> List[List[Any]]:
    return [[k, v] for k, v in _require_object("entries", value).items()]


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


class HiveDate:
    """Minimal date value backing ``new Date(...)``; always UTC."""

    exposed_members = frozenset({"toISOString", "getTime", "valueOf"})

    def __init__(self, moment: datetime) -> None:
        self._moment = moment.astimezone(timezone.utc) if moment.tzinfo else moment.replace(tzinfo=timezone.utc)

    @classmethod
    def create(cls, value: Any = None) -> "HiveDate":
        if value is None:
            return cls(datetime.now(timezone.utc))
        if isinstance(value, HiveDate):
            return cls(value._moment)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cls(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        if isinstance(value, str):
            text = value.strip()
            if text.endswith("Z") or text.endswith("z"):
                text = text[:-1] + "+00:00"
            try:
                return cls(datetime.fromisoformat(text))
            except ValueError as exc:
                raise EvaluationError(f"invalid date: {value!r}") from exc
        raise EvaluationError(f"invalid date: {type_name(value)}")

    def to_iso_string(self) -> str:
        millis = self._moment.microsecond // 1000
        return self._moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"

    def get_time(self) -> int:
        return int(self._moment.timestamp() * 1000)

    def member(self, name: str) -> Any:
        if name == "toISOString":
            return Builtin(self.to_iso_string, "toISOString")
        return Builtin(self.get_time, name)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, HiveDate) and other._moment == self._moment

    def __hash__(self) -> int:
        return hash(self._moment)


def date_now() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Methods on strings, lists and dicts
# ---------------------------------------------------------------------------


def _slice_bounds(start: Any = None, end: Any = None) -> slice:
    return slice(None if start is None else int(start), None if end is None else int(end))


def _substring(text: str, start: Any = 0, end: Any = None) -> str:
    lo = max(0, int(start or 0))
    hi = len(text) if end is None else max(0, int(end))
    if lo > hi:
        lo, hi = hi, lo
    return text[lo:hi]


def _split(text: str, separator: Any = None, limit: Any = None) -> List[str]:
    if separator is None:
        parts = text.split()
    elif separator == "":
        parts = list(text)
    else:
        parts = text.split(to_text(separator))
    return parts if limit is None else parts[: int(limit)]


def _index_of(container: Any, item: Any) -> int:
    try:
        return container.index(item)
    except ValueError:
        return -1


def _join(separator: str, items: Iterable[Any]) -> str:
    return separator.join("" if i is None else to_text(i) for i in items)


_STRING_METHODS: Dict[str, Callable[..., Any]] = {
    "upper": lambda s: s.upper(),
    "toUpperCase": lambda s: s.upper(),
    "lower": lambda s: s.lower(),
    "toLowerCase": lambda s: s.lower(),
    "trim": lambda s: s.strip(),
    "strip": lambda s, chars=None: s.strip(chars),
    "startsWith": lambda s, prefix: s.startswith(to_text(prefix)),
    "startswith": lambda s, prefix: s.startswith(to_text(prefix)),
    "endsWith": lambda s, suffix: s.endswith(to_text(suffix)),
    "endswith": lambda s, suffix: s.endswith(to_text(suffix)),
    "split": _split,
    "replace": lambda s, old, new: s.replace(to_text(old), to_text(new), 1),
    "replaceAll": lambda s, old, new: s.replace(to_text(old), to_text(new)),
    "includes": lambda s, part: to_text(part) in s,
    "indexOf": lambda s, part: s.find(to_text(part)),
    "slice": lambda s, start=None, end=None: s[_slice_bounds(start, end)],
    "substring": _substring,
    "join": lambda s, items: _join(s, items),
    "toString": lambda s: s,
}


async def _list_map(items: List[Any], fn: Any) -> List[Any]:
    return [await call_value(fn, (item, i)) for i, item in enumerate(items)]


async def _list_filter(items: List[Any], fn: Any) -> List[Any]:
    return [item for i, item in enumerate(items) if await call_value(fn, (item, i))]


async def _list_find(items: List[Any], fn: Any) -> Any:
    for i, item in enumerate(items):
        if await call_value(fn, (item, i)):
            return item
    return None


async def _list_some(items: List[Any], fn: Any) -> bool:
    for i, item in enumerate(items):
        if await call_value(fn, (item, i)):
            return True
    return False


async def _list_every(items: List[Any], fn: Any) -> bool:
    for i, item in enumerate(items):
        if not await call_value(fn, (item, i)):
            return False
    return True


async def _list_for_each(items: List[Any], fn: Any) -> None:
    for i, item in enumerate(items):
        await call_value(fn, (item, i))


def _list_push(items: List[Any], *values: Any) -> int:
    items.extend(values)
    return len(items)


def _list_append(items: List[Any], value: Any) -> None:
    items.append(value)


def _list_pop(items: List[Any], index: Any = None) -> Any:
    if not items:
        return None
    return items.pop() if index is None else items.pop(int(index))


def _list_reverse(items: List[Any]) -> List[Any]:
    items.reverse()
    return items


def _list_concat(items: List[Any], *others: Any) -> List[Any]:
    result = list(items)
    for other in others:
        if isinstance(other, list):
            result.extend(other)
        else:
            result.append(other)
    return result


_LIST_METHODS: Dict[str, Callable[..., Any]] = {
    "push": _list_push,
    "append": _list_append,
    "pop": _list_pop,
    "slice": lambda items, start=None, end=None: items[_slice_bounds(start, end)],
    "map": _list_map,
    "filter": _list_filter,
    "find": _list_find,
    "some": _list_some,
    "every": _list_every,
    "forEach": _list_for_each,
    "includes": lambda items, value: value in items,
    "indexOf": _index_of,
    "join": lambda items, separator=",": _join(to_text(separator), items),
    "concat": _list_concat,
    "reverse": _list_reverse,
}

_NUMBER_METHODS: Dict[str, Callable[..., Any]] = {
    "toString": lambda n: to_text(n),
    "toFixed": lambda n, digits=0: f"{n:.{int(digits)}f}",
}

_DICT_METHODS: Dict[str, Callable[..., Any]] = {
    "get": lambda d, key, default=None: d.get(key, default),
    "keys": lambda d: list(d.keys()),
    "values": lambda d: list(d.values()),
    "items": lambda d: [[k, v] for k, v in d.items()],
}


def method_table(value: Any) -> Optional[Dict[str, Callable[..., Any]]]:
    if isinstance(value, str):
        return _STRING_METHODS
    if isinstance(value, list):
        return _LIST_METHODS
    if isinstance(value, dict):
        return _DICT_METHODS
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _NUMBER_METHODS
    return None


def bind_method(value: Any, name: str) -> Optional[Builtin]:
    table = method_table(value)
    if table is None or name not in table:
        return None
    fn = table[name]
    return Builtin(lambda *args: fn(value, *args), name)


# ---------------------------------------------------------------------------
# Global scope
# ---------------------------------------------------------------------------


def _builtin_namespace() -> Dict[str, Any]:
    def b(fn: Callable[..., Any], name: str) -> Builtin:
        return Builtin(fn, name)

    date_ctor = b(HiveDate.create, "Date")
    return {
        "JSON": Namespace("JSON", {"stringify": b(json_stringify, "stringify"), "parse": b(json_parse, "parse")}),
        "Math": Namespace(
            "Math",
            {
                "floor": b(lambda x: math.floor(x), "floor"),
                "ceil": b(lambda x: math.ceil(x), "ceil"),
                "round": b(_math_round, "round"),
                "min": b(_math_min, "min"),
                "max": b(_math_max, "max"),
                "abs": b(abs, "abs"),
                "pow": b(lambda x, y: x**y, "pow"),
                "random": b(random.random, "random"),
                "PI": math.pi,
            },
        ),
        "Date": Namespace("Date", {"now": b(date_now, "now")}, call=date_ctor, construct=date_ctor),
        "Object": Namespace(
            "Object",
            {
                "keys": b(object_keys, "keys"),
                "values": b(object_values, "values"),
                "entries": b(object_entries, "entries"),
            },
        ),
        "parseInt": b(parse_int, "parseInt"),
        "parseFloat": b(parse_float, "parseFloat"),
        "String": b(lambda value="": to_text(value), "String"),
        "Number": b(lambda value=0: to_number(value), "Number"),
        "Boolean": b(lambda value=None: bool(value), "Boolean"),
        "btoa": b(btoa, "btoa"),
        "atob": b(atob, "atob"),
        "encodeURIComponent": b(encode_uri_component, "encodeURIComponent"),
        "len": b(hive_len, "len"),
        "str": b(lambda value="": to_text(value), "str"),
        "int": b(lambda value=0: int(to_number(value) or 0), "int"),
        "float": b(lambda value=0: float(to_number(value) or 0), "float"),
        "bool": b(lambda value=None: bool(value), "bool"),
        "range": b(hive_range, "range"),
    }


BUILTINS: Mapping[str, Any] = _builtin_namespace()

BUILTIN_NAMES = frozenset(BUILTINS)


def to_plain(value: Any) -> Any:
    """Convert a capability result into plain JSON-compatible data."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, BaseModel):
        return to_plain(value.model_dump())
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, HiveDate):
        return value.to_iso_string()
    return None
