"""
Q&A Entry Models

This module defines the persisted question/answer entry and its action variants.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from qna.utils.helpers import ensure_list

logger = logging.getLogger(__name__)


class QnaAction(str, Enum):
    """How the answer of an entry is delivered."""

    TEXT = "text"  # Reply with the answer text
    REDIRECT = "redirect"  # Jump to a flow (and optional node)
    TEXT_REDIRECT = "text_redirect"  # Reply with text, then jump


# Actions that need a text answer / a redirect target
TEXT_ACTIONS = (QnaAction.TEXT, QnaAction.TEXT_REDIRECT)
REDIRECT_ACTIONS = (QnaAction.REDIRECT, QnaAction.TEXT_REDIRECT)
_ACTION_VALUES = {action.value for action in QnaAction}


class QnaEntryData(BaseModel):
    """
    Data of a single Q&A entry, without its identity.

    Accepts the camelCase redirect keys written by older tooling
    (``redirectFlow`` / ``redirectNode``); always dumps snake_case.
    """

    model_config = ConfigDict(populate_by_name=True)

    questions: List[str] = Field(
        ..., description="Surface forms that trigger this entry"
    )
    action: QnaAction = Field(QnaAction.TEXT, description="Answer delivery mode")
    answer: Optional[str] = Field(
        None, description="Answer text (text and text_redirect actions)"
    )
    redirect_flow: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("redirect_flow", "redirectFlow"),
        description="Target flow (redirect and text_redirect actions)",
    )
    redirect_node: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("redirect_node", "redirectNode"),
        description="Optional node inside the target flow",
    )
    enabled: bool = Field(True, description="Disabled entries are kept but not matched")

    @field_validator("questions", mode="before")
    @classmethod
    def _wrap_single_question(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("questions")
    @classmethod
    def _check_questions(cls, value: List[str]) -> List[str]:
        questions = [question.strip() for question in value]
        if not questions:
            raise ValueError("at least one question is required")
        if any(not question for question in questions):
            raise ValueError("questions must not be blank")
        return questions

    @field_validator("answer", "redirect_flow", "redirect_node", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @model_validator(mode="after")
    def _check_action_fields(self) -> "QnaEntryData":
        action = getattr(self.action, "value", self.action)
        if self.action in TEXT_ACTIONS and not self.answer:
            raise ValueError(f"action '{action}' requires an answer")
        if self.action in REDIRECT_ACTIONS and not self.redirect_flow:
            raise ValueError(f"action '{action}' requires a redirect flow")

        # Fields the action does not use are never exported
        if self.action not in TEXT_ACTIONS:
            self.answer = None
        if self.action not in REDIRECT_ACTIONS:
            self.redirect_flow = None
            self.redirect_node = None
        return self

    @classmethod
    def from_stored(cls, raw: Dict[str, Any]) -> "QnaEntryData":
        """
        Build entry data from what a store has persisted.

        Entries written by older versions may no longer validate; those are
        loaded unvalidated with missing fields defaulted so reads and exports
        keep working.

        Args:
            raw: Persisted dictionary

        Returns:
            QnaEntryData instance (possibly unvalidated)
        """
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Loading malformed stored entry as-is: {e.error_count()} error(s)")

        action = raw.get("action", QnaAction.TEXT)
        if isinstance(action, str) and action in _ACTION_VALUES:
            action = QnaAction(action)
        return cls.model_construct(
            questions=ensure_list(raw.get("questions", raw.get("question"))),
            action=action,
            answer=raw.get("answer"),
            redirect_flow=raw.get("redirect_flow", raw.get("redirectFlow")),
            redirect_node=raw.get("redirect_node", raw.get("redirectNode")),
            enabled=bool(raw.get("enabled", True)),
        )


class QnaEntry(BaseModel):
    """A persisted Q&A entry: store-assigned id plus its data."""

    id: str = Field(..., description="Store-assigned identifier, never reassigned")
    data: QnaEntryData

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert entry to dictionary.

        Returns:
            Dictionary representation
        """
        return self.model_dump(mode="json")

    @classmethod
    def from_stored(cls, entry_id: str, raw: Dict[str, Any]) -> "QnaEntry":
        """
        Build an entry from a store id and its persisted dictionary.

        The data is not validated again, so best-effort data from
        QnaEntryData.from_stored stays loadable.
        """
        return cls.model_construct(id=entry_id, data=QnaEntryData.from_stored(raw))
