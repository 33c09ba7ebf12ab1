from typing import Any, Literal, Optional

from langgraph.graph import StateGraph, START, END

from registration.state import WizardState
from registration.validator import StepValidator


class WizardGraphFactory:
    """Step controller for one wizard.

    Every user action is one invocation: ``advance`` validates the current step
    and moves forward, ``retreat`` moves back without validating, ``submit``
    runs the final checks and marks the state ready for the signup call.
    """

    def __init__(self, validator: StepValidator):
        self.validator = validator

    @staticmethod
    def route_action(state: WizardState) -> Literal["advance", "retreat", "submit"]:
        return state.action

    @staticmethod
    def advance_step(state: WizardState) -> WizardState:
        return state.model_copy(
            update={"current_step": min(state.current_step + 1, state.total_steps)}
        )

    @staticmethod
    def retreat_step(state: WizardState) -> WizardState:
        return state.model_copy(
            update={"current_step": max(state.current_step - 1, 1), "validation_error": ""}
        )

    @staticmethod
    def mark_ready(state: WizardState) -> WizardState:
        """
        Only reached when the final checks passed; the signup call itself
        happens outside the graph.
        """
        return state.model_copy(update={"ready_to_submit": True})

    def build(self) -> StateGraph:
        g = StateGraph(WizardState)

        g.add_node("validate_step", self.validator.validate_current_step)
        g.add_node("advance", self.advance_step)
        g.add_node("retreat", self.retreat_step)
        g.add_node("validate_submission", self.validator.validate_submission)
        g.add_node("ready", self.mark_ready)

        g.add_conditional_edges(
            START,
            self.route_action,
            {"advance": "validate_step", "retreat": "retreat", "submit": "validate_submission"},
        )
        g.add_conditional_edges(
            "validate_step",
            self.validator.should_advance,
            {"blocked": END, "advance": "advance"},
        )
        g.add_conditional_edges(
            "validate_submission",
            self.validator.should_submit,
            {"blocked": END, "ready": "ready"},
        )
        g.add_edge("advance", END)
        g.add_edge("retreat", END)
        g.add_edge("ready", END)

        return g

    def compile(self, checkpointer: Optional[Any] = None):
        return self.build().compile(checkpointer=checkpointer)
