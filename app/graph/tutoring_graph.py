from typing import Literal

from langgraph.graph import StateGraph, END

from app.graph.state import TurnGraphState
from app.utils.result import Ok


def should_evaluate(state: TurnGraphState) -> Literal["evaluate", "generate"]:
    """Grade the student's answer first only when the classifier asked for it."""
    if state.get("needs_evaluation", False):
        return "evaluate"
    return "generate"


def route_generation(state: TurnGraphState) -> Literal["apply", "fallback"]:
    """Use the generated turn when extraction succeeded, else synthesize one."""
    if isinstance(state.get("parsed"), Ok):
        return "apply"
    return "fallback"


def build_turn_graph(orchestrator):
    """
    Compile the per-turn pipeline around an orchestrator's node methods.

    classify -> [evaluate] -> generate -> apply | fallback -> finalize
    """
    workflow = StateGraph(TurnGraphState)

    # Add nodes
    workflow.add_node("classify", orchestrator.classify)
    workflow.add_node("evaluate", orchestrator.evaluate)
    workflow.add_node("generate", orchestrator.generate)
    workflow.add_node("apply", orchestrator.apply_turn)
    workflow.add_node("fallback", orchestrator.fallback)
    workflow.add_node("finalize", orchestrator.finalize)

    workflow.set_entry_point("classify")

    # Add conditional edges
    workflow.add_conditional_edges(
        "classify",
        should_evaluate,
        {
            "evaluate": "evaluate",
            "generate": "generate"
        }
    )
    workflow.add_edge("evaluate", "generate")
    workflow.add_conditional_edges(
        "generate",
        route_generation,
        {
            "apply": "apply",
            "fallback": "fallback"
        }
    )
    workflow.add_edge("apply", "finalize")
    workflow.add_edge("fallback", "finalize")
    workflow.add_edge("finalize", END)

    return workflow.compile()
