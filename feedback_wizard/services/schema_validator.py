"""Schema-driven validation of survey answers"""
from typing import Dict, Iterable, Optional
import logging

from feedback_wizard.models.schema import (
    FieldSpec,
    FieldType,
    FieldValue,
    FormState,
    Predicate,
    SurveySchema,
    ValidationResult,
)

logger = logging.getLogger(__name__)

TYPE_ERROR_MESSAGE = "Invalid value for this field."


class SchemaValidator:
    """
    Validates a FormState against a SurveySchema.

    Results are always returned as data; bad input never raises.
    Per-field rules run first (type, then required, then declared constraints
    with the first failure winning), then every refinement whose scope touches
    the validated subset.
    """

    def __init__(self, schema: SurveySchema):
        self.schema = schema

    def validate(self, field_subset: Iterable[str], form: FormState) -> ValidationResult:
        """Validate only the given fields plus the refinements touching them"""
        field_ids = self.schema.in_declaration_order(field_subset)
        errors: Dict[str, Optional[str]] = {
            field_id: self._check_field(self.schema.field(field_id), form)
            for field_id in field_ids
        }

        for refinement in self.schema.refinements_for(field_ids):
            if self._holds(refinement.predicate, form, default=False):
                continue
            anchor = self.schema.anchor(refinement)
            # a per-field error on the anchor takes precedence
            if not errors.get(anchor):
                errors[anchor] = refinement.message

        ordered = {field_id: errors[field_id] for field_id in self.schema.in_declaration_order(errors)}
        return ValidationResult(errors=ordered)

    def validate_step(self, ordinal: int, form: FormState) -> ValidationResult:
        return self.validate(self.schema.step(ordinal).field_ids, form)

    def validate_all(self, form: FormState) -> ValidationResult:
        return self.validate(self.schema.field_ids, form)

    def _check_field(self, spec: FieldSpec, form: FormState) -> Optional[str]:
        value = form.get(spec.id)

        if value.kind is not spec.type:
            return TYPE_ERROR_MESSAGE

        if self._is_missing(spec, value):
            return spec.required_message if self._is_required(spec, form) else None

        for constraint in spec.constraints:
            if not constraint.check(value):
                return constraint.message
        return None

    @staticmethod
    def _is_missing(spec: FieldSpec, value: FieldValue) -> bool:
        if spec.trim and spec.type is FieldType.TEXT:
            return not value.to_raw().strip()
        return value.is_empty()

    def _is_required(self, spec: FieldSpec, form: FormState) -> bool:
        if spec.required:
            return True
        if spec.required_when is None:
            return False
        return self._holds(spec.required_when, form, default=True)

    @staticmethod
    def _holds(predicate: Predicate, form: FormState, default: bool) -> bool:
        try:
            return bool(predicate(form))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Validation predicate could not be evaluated: {e}")
            return default
