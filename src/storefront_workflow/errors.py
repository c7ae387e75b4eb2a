"""Errors surfaced by the workflow to whatever renders it."""

from __future__ import annotations


class InvalidTransition(RuntimeError):
    """An intent was dispatched in a state that does not accept it."""


class WorkflowError(Exception):
    """Base for failures shown to the user.

    ``can_go_back`` tells the view whether "try a different frame" is a valid
    recovery, as opposed to only "start over".
    """

    can_go_back = False
    default_message = "Something went wrong."

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return self.reason or self.default_message


class ExtractionFailed(WorkflowError):
    default_message = "An unknown error occurred during frame extraction."


class NoProductsIdentified(WorkflowError):
    can_go_back = True
    default_message = (
        "The AI could not identify any products in the selected frame. "
        "Please try a different frame or video."
    )


class GenerationFailed(WorkflowError):
    can_go_back = True
    default_message = "An unknown error occurred while generating product details."


class ImageEditFailed(WorkflowError):
    default_message = "An error occurred during image editing."
