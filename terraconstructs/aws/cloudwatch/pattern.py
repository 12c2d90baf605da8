"""
Filter patterns for CloudWatch Logs subscriptions and metric filters.

Text patterns match terms anywhere in the log event. JSON patterns match
fields of structured log events and can be combined with ``all`` / ``any``.
"""
from typing import Sequence, Union

from ...errors import UnscopedValidationError

COMPARISON_OPERATORS = ("=", "!=", "<", "<=", ">", ">=")


class FilterPattern:
    """A log pattern, rendered to its CloudWatch Logs syntax."""

    def __init__(self, log_pattern_string: str) -> None:
        self.log_pattern_string = log_pattern_string

    def __repr__(self) -> str:
        return f"FilterPattern({self.log_pattern_string!r})"

    @staticmethod
    def literal(log_pattern_string: str) -> "FilterPattern":
        """Use the given string as log pattern."""
        return FilterPattern(log_pattern_string)

    @staticmethod
    def all_events() -> "FilterPattern":
        """A log pattern that matches all events."""
        return FilterPattern("")

    @staticmethod
    def all_terms(*terms: str) -> "FilterPattern":
        """A log pattern that matches if all the strings given appear in the event."""
        return _text_pattern([list(terms)])

    @staticmethod
    def any_term(*terms: str) -> "FilterPattern":
        """A log pattern that matches if any of the strings given appear in the event."""
        return _text_pattern([[term] for term in terms])

    @staticmethod
    def any_term_group(*term_groups: Sequence[str]) -> "FilterPattern":
        """A log pattern that matches if all the strings in any of the given groups appear."""
        return _text_pattern([list(group) for group in term_groups])

    # ====== JSON patterns ======

    @staticmethod
    def string_value(json_field: str, comparison: str, value: str) -> "JsonPattern":
        """A JSON log pattern that compares string values."""
        return JsonPattern(f"{json_field} {_string_operator(comparison)} {_quote_term(value)}")

    @staticmethod
    def number_value(json_field: str, comparison: str, value: Union[int, float]) -> "JsonPattern":
        """A JSON log pattern that compares numerical values."""
        if comparison not in COMPARISON_OPERATORS:
            raise UnscopedValidationError(
                f"Invalid comparison operator ('{comparison}'), must be one of {', '.join(COMPARISON_OPERATORS)}"
            )
        return JsonPattern(f"{json_field} {comparison} {value}")

    @staticmethod
    def exists(json_field: str) -> "JsonPattern":
        """A JSON log pattern that matches if the field exists and has any value."""
        return FilterPattern.string_value(json_field, "=", "*")

    @staticmethod
    def is_null(json_field: str) -> "JsonPattern":
        return JsonPattern(f"{json_field} IS NULL")

    @staticmethod
    def not_exists(json_field: str) -> "JsonPattern":
        return JsonPattern(f"{json_field} NOT EXISTS")

    @staticmethod
    def boolean_value(json_field: str, value: bool) -> "JsonPattern":
        return JsonPattern(f"{json_field} IS {'TRUE' if value else 'FALSE'}")

    @staticmethod
    def all(*patterns: "JsonPattern") -> "JsonPattern":
        """A JSON log pattern that matches if all given JSON log patterns match."""
        return _aggregate("&&", patterns)

    @staticmethod
    def any(*patterns: "JsonPattern") -> "JsonPattern":
        """A JSON log pattern that matches if any of the given JSON log patterns match."""
        return _aggregate("||", patterns)


class JsonPattern(FilterPattern):
    """Base for patterns that only match JSON log events."""

    def __init__(self, json_pattern_string: str) -> None:
        super().__init__(f"{{ {json_pattern_string} }}")
        self.json_pattern_string = json_pattern_string


def _aggregate(operator: str, patterns: Sequence[JsonPattern]) -> JsonPattern:
    if not patterns:
        raise UnscopedValidationError("Must supply at least one pattern, or use allEvents() to match all events.")
    if len(patterns) == 1:
        return patterns[0]
    return JsonPattern(f" {operator} ".join(f"({p.json_pattern_string})" for p in patterns))


def _text_pattern(clauses: Sequence[Sequence[str]]) -> FilterPattern:
    quoted = [" ".join(_quote_term(term) for term in terms) for terms in clauses]
    if len(quoted) == 1:
        return FilterPattern(quoted[0])
    return FilterPattern(" ".join(f"?{alternative}" for alternative in quoted))


def _quote_term(term: str) -> str:
    return '"' + term.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _string_operator(operator: str) -> str:
    if operator in ("", "=="):
        return "="
    if operator not in ("=", "!="):
        raise UnscopedValidationError(
            f"Invalid comparison operator ('{operator}'), must be either '=' or '!='"
        )
    return operator
