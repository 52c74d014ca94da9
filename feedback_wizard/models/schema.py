"""Survey schema, field values and form state"""
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, ClassVar, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union


class FieldType(str, Enum):
    """Declared type of a survey field"""
    TEXT = "text"
    NUMBER = "number"
    ENUM = "enum"
    BOOLEAN = "boolean"


class SchemaError(ValueError):
    """Raised when a survey schema is internally inconsistent"""


class FormLockedError(RuntimeError):
    """Raised when a frozen form is edited"""


# ---------------------------------------------------------------------------
# Field values (tagged union)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextValue:
    text: str = ""
    kind: ClassVar[Optional[FieldType]] = FieldType.TEXT

    def is_empty(self) -> bool:
        return self.text == ""

    def to_raw(self) -> Any:
        return self.text


@dataclass(frozen=True)
class NumberValue:
    number: Optional[float] = None
    kind: ClassVar[Optional[FieldType]] = FieldType.NUMBER

    def is_empty(self) -> bool:
        return self.number is None

    def to_raw(self) -> Any:
        return self.number


@dataclass(frozen=True)
class EnumValue:
    choice: Optional[str] = None
    kind: ClassVar[Optional[FieldType]] = FieldType.ENUM

    def is_empty(self) -> bool:
        return self.choice is None or self.choice == ""

    def to_raw(self) -> Any:
        return self.choice


@dataclass(frozen=True)
class BooleanValue:
    flag: bool = False
    kind: ClassVar[Optional[FieldType]] = FieldType.BOOLEAN

    def is_empty(self) -> bool:
        # false is an answer, not a missing one
        return False

    def to_raw(self) -> Any:
        return self.flag


@dataclass(frozen=True)
class MalformedValue:
    """Input that could not be read as the field's declared type"""
    raw: Any = None
    kind: ClassVar[Optional[FieldType]] = None

    def is_empty(self) -> bool:
        return False

    def to_raw(self) -> Any:
        return self.raw


FieldValue = Union[TextValue, NumberValue, EnumValue, BooleanValue, MalformedValue]


def coerce_value(field_type: FieldType, raw: Any) -> FieldValue:
    """
    Read a raw form input as a tagged value of the given type.

    Anything that does not fit the type becomes a MalformedValue so that the
    validator can report it; nothing here raises.
    """
    if field_type is FieldType.TEXT:
        if raw is None:
            return TextValue("")
        if isinstance(raw, str):
            return TextValue(raw)
    elif field_type is FieldType.NUMBER:
        if raw is None:
            return NumberValue(None)
        # bool is an int subclass, but a checkbox is not a rating
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return NumberValue(raw)
    elif field_type is FieldType.ENUM:
        if raw is None or isinstance(raw, str):
            return EnumValue(raw or None)
    elif field_type is FieldType.BOOLEAN:
        if raw is None:
            return BooleanValue(False)
        if isinstance(raw, bool):
            return BooleanValue(raw)
    return MalformedValue(raw)


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MinLength:
    length: int
    message: str

    def check(self, value: FieldValue) -> bool:
        return len(value.to_raw()) >= self.length


@dataclass(frozen=True)
class MaxLength:
    length: int
    message: str

    def check(self, value: FieldValue) -> bool:
        return len(value.to_raw()) <= self.length


@dataclass(frozen=True)
class MinValue:
    minimum: float
    message: str

    def check(self, value: FieldValue) -> bool:
        return value.to_raw() >= self.minimum


@dataclass(frozen=True)
class MaxValue:
    maximum: float
    message: str

    def check(self, value: FieldValue) -> bool:
        return value.to_raw() <= self.maximum


@dataclass(frozen=True)
class OneOf:
    domain: Tuple[str, ...]
    message: str = "Please select a valid option."

    def check(self, value: FieldValue) -> bool:
        return value.to_raw() in self.domain


Constraint = Union[MinLength, MaxLength, MinValue, MaxValue, OneOf]
Predicate = Callable[["FormState"], bool]


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    """A single survey question"""
    id: str
    type: FieldType
    label: str = ""
    required: bool = False
    required_message: str = "This field is required."
    constraints: Tuple[Constraint, ...] = ()
    options: Tuple[str, ...] = ()
    required_when: Optional[Predicate] = None
    # whitespace-only text counts as missing when the field is required
    trim: bool = False
    default: Any = None

    def default_value(self) -> FieldValue:
        return coerce_value(self.type, self.default)


@dataclass(frozen=True)
class StepDefinition:
    ordinal: int
    field_ids: Tuple[str, ...]
    title: str = ""


@dataclass(frozen=True)
class Refinement:
    """
    A rule spanning several fields.

    Args:
        scope: Field ids the rule reads; it runs whenever a validated subset
            intersects them
        predicate: Returns True when the form satisfies the rule
        message: Error reported when the predicate fails
        error_field: Field the error is attached to; defaults to the
            first-declared field of the scope
    """
    scope: Tuple[str, ...]
    predicate: Predicate
    message: str
    error_field: Optional[str] = None

    @classmethod
    def at_least_one(cls, group: Iterable[str], message: str) -> "Refinement":
        """At least one boolean field of the group must be checked"""
        group = tuple(group)

        def any_checked(form: "FormState") -> bool:
            return any(form.raw(field_id) is True for field_id in group)

        return cls(scope=group, predicate=any_checked, message=message)


@dataclass(frozen=True)
class SurveySchema:
    fields: Tuple[FieldSpec, ...]
    steps: Tuple[StepDefinition, ...]
    refinements: Tuple[Refinement, ...] = ()

    def __post_init__(self):
        ids = [spec.id for spec in self.fields]
        if len(set(ids)) != len(ids):
            raise SchemaError("Duplicate field ids in schema")

        ordinals = [step.ordinal for step in self.steps]
        if ordinals != list(range(1, len(self.steps) + 1)):
            raise SchemaError(f"Step ordinals must be contiguous from 1, got {ordinals}")

        placed: List[str] = [field_id for step in self.steps for field_id in step.field_ids]
        if sorted(placed) != sorted(ids):
            raise SchemaError("Every field must belong to exactly one step")

        for refinement in self.refinements:
            unknown = set(refinement.scope) - set(ids)
            if unknown or not refinement.scope:
                raise SchemaError(f"Refinement scope references unknown fields: {sorted(unknown)}")
            if refinement.error_field and refinement.error_field not in ids:
                raise SchemaError(f"Refinement error field {refinement.error_field!r} is not declared")

        object.__setattr__(self, "_by_id", {spec.id: spec for spec in self.fields})
        object.__setattr__(self, "_position", {field_id: i for i, field_id in enumerate(ids)})

    @property
    def field_ids(self) -> Tuple[str, ...]:
        return tuple(spec.id for spec in self.fields)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def field(self, field_id: str) -> FieldSpec:
        return self._by_id[field_id]

    def has_field(self, field_id: str) -> bool:
        return field_id in self._by_id

    def step(self, ordinal: int) -> StepDefinition:
        return self.steps[ordinal - 1]

    def in_declaration_order(self, field_ids: Iterable[str]) -> List[str]:
        known = [field_id for field_id in set(field_ids) if field_id in self._position]
        return sorted(known, key=self._position.__getitem__)

    def anchor(self, refinement: Refinement) -> str:
        """Field that carries a refinement's error"""
        if refinement.error_field:
            return refinement.error_field
        return self.in_declaration_order(refinement.scope)[0]

    def refinements_for(self, field_ids: Iterable[str]) -> List[Refinement]:
        subset = set(field_ids)
        return [r for r in self.refinements if subset.intersection(r.scope)]


# ---------------------------------------------------------------------------
# Form state and validation results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FormState:
    """Current answers of one wizard session; every declared field has an entry"""
    values: Mapping[str, FieldValue]
    dirty: FrozenSet[str] = frozenset()
    locked: bool = False

    @classmethod
    def initial(cls, schema: SurveySchema) -> "FormState":
        return cls(values=MappingProxyType({spec.id: spec.default_value() for spec in schema.fields}))

    @classmethod
    def from_record(cls, schema: SurveySchema, record: Mapping[str, Any]) -> "FormState":
        """Build a form from a flat key/value record; missing keys keep their defaults"""
        values: Dict[str, FieldValue] = {}
        for spec in schema.fields:
            if spec.id in record:
                values[spec.id] = coerce_value(spec.type, record[spec.id])
            else:
                values[spec.id] = spec.default_value()
        dirty = frozenset(key for key in record if key in values)
        return cls(values=MappingProxyType(values), dirty=dirty)

    def get(self, field_id: str) -> FieldValue:
        return self.values[field_id]

    def raw(self, field_id: str) -> Any:
        return self.values[field_id].to_raw()

    def with_values(self, updates: Mapping[str, FieldValue]) -> "FormState":
        if self.locked:
            raise FormLockedError("Form has been submitted and can no longer be edited")
        values = dict(self.values)
        values.update(updates)
        return replace(self, values=MappingProxyType(values), dirty=self.dirty | frozenset(updates))

    def freeze(self) -> "FormState":
        return replace(self, locked=True)

    def to_record(self) -> Dict[str, Any]:
        return {field_id: value.to_raw() for field_id, value in self.values.items()}


@dataclass(frozen=True)
class ValidationResult:
    """Per-field error messages (None when the field passed), in declaration order"""
    errors: Mapping[str, Optional[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not any(self.errors.values())

    @property
    def first_invalid_field(self) -> Optional[str]:
        return next((field_id for field_id, message in self.errors.items() if message), None)

    def error_for(self, field_id: str) -> Optional[str]:
        return self.errors.get(field_id)

    def messages(self) -> Dict[str, str]:
        return {field_id: message for field_id, message in self.errors.items() if message}
