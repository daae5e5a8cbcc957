"""User-facing response model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator


class SkillResponse(BaseModel):
    """One natural-language answer per command outcome.

    ``reprompt`` defaults to the speech text, so the front end repeats the
    prompt if the user stays silent.
    """

    model_config = ConfigDict(frozen=True)

    speech: str
    reprompt: str = ""
    should_end_session: bool = False

    @model_validator(mode="after")
    def _default_reprompt(self) -> SkillResponse:
        if not self.reprompt and not self.should_end_session:
            object.__setattr__(self, "reprompt", self.speech)
        return self
