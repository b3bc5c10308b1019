"""
Number Guessing Workflow.

Two flows take turns through a pair of HandoffQueues:

```
hinter flow:   hinter ─┬─continue─→ hinter
                       └─end─→ done

guesser flow:  guesser ─┬─continue─→ guesser
                        └─end─→ done
```

The guesser binary-searches a secret number. After each guess the hinter
answers "higher", "lower" or "correct". If the guesser runs out of turns
it sends GAME_OVER so the hinter stops waiting.
"""

from typing import Any, Dict, Optional, Tuple
import asyncio
import logging

from nodeflow.config import settings
from nodeflow.engine.flow import Flow
from nodeflow.engine.node import BaseNode, Node
from nodeflow.engine.queue import HandoffQueue
from nodeflow.workflows.registry import workflow_registry


logger = logging.getLogger(__name__)


# Sent to the hinter to end the game
GAME_OVER = "GAME_OVER"

# First hint, before any guess was made
START_HINT = "go"
CORRECT_HINT = "correct"


class Hinter(Node):
    """Answers each guess with a hint for the guesser."""

    async def prep(self, shared: Dict[str, Any]) -> Optional[Tuple[Optional[int], int]]:
        guess = await shared["hinter_queue"].get()
        if guess == GAME_OVER:
            return None
        return guess, shared["secret"]

    async def exec(self, inputs: Optional[Tuple[Optional[int], int]]) -> Optional[str]:
        if inputs is None:
            return None
        guess, secret = inputs
        if guess is None:
            return START_HINT
        if guess < secret:
            return "higher"
        if guess > secret:
            return "lower"
        return CORRECT_HINT

    async def post(self, shared: Dict[str, Any], prep_res: Any, hint: Optional[str]) -> str:
        if hint is None:
            return "end"
        shared["hints"].append(hint)
        shared["guesser_queue"].put(hint)
        return "end" if hint == CORRECT_HINT else "continue"


class Guesser(Node):
    """Narrows the search range from each hint and makes the next guess."""

    async def prep(self, shared: Dict[str, Any]) -> Tuple[str, int, int, Optional[int]]:
        hint = await shared["guesser_queue"].get()
        last_guess = shared["guesses"][-1] if shared["guesses"] else None
        return hint, shared["low"], shared["high"], last_guess

    async def exec(self, inputs: Tuple[str, int, int, Optional[int]]) -> Optional[Dict[str, int]]:
        hint, low, high, last_guess = inputs
        if hint == CORRECT_HINT:
            return None
        if hint == "higher":
            low = last_guess + 1
        elif hint == "lower":
            high = last_guess - 1
        return {"low": low, "high": high, "guess": (low + high) // 2}

    async def post(self, shared: Dict[str, Any], prep_res: Any, exec_res: Optional[Dict[str, int]]) -> str:
        if exec_res is None:
            shared["solved"] = True
            logger.info(f"Guessed {shared['secret']} in {len(shared['guesses'])} turns")
            return "end"

        max_turns = self.params.get("max_turns", settings.GUESSING_MAX_TURNS)
        if len(shared["guesses"]) >= max_turns:
            logger.info(f"Giving up after {max_turns} turns")
            shared["hinter_queue"].put(GAME_OVER)
            return "end"

        shared["low"], shared["high"] = exec_res["low"], exec_res["high"]
        shared["guesses"].append(exec_res["guess"])
        shared["hinter_queue"].put(exec_res["guess"])
        return "continue"


def _turn_taking_flow(player: Node) -> Flow:
    player.transition("continue").to(player)
    player.transition("end").to(BaseNode(name="done"))
    return Flow(start=player, name=f"{player.name}_flow")


def build_guessing_flows() -> Dict[str, Flow]:
    """Create the hinter and guesser flows."""
    return {
        "hinter": _turn_taking_flow(Hinter(name="hinter")),
        "guesser": _turn_taking_flow(Guesser(name="guesser")),
    }


@workflow_registry.register("guessing", build=build_guessing_flows)
async def run_guessing(shared: Dict[str, Any], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Two concurrent flows take turns guessing a secret number.

    Shared context requires:
    - secret: int - The number to guess

    Optional:
    - low, high: int - Search range (defaults to 1..100)

    Params:
    - max_turns: int - Guess limit (defaults to GUESSING_MAX_TURNS)
    """
    if "secret" not in shared:
        raise ValueError("Shared context requires a 'secret' number")

    shared.setdefault("low", 1)
    shared.setdefault("high", 100)
    shared.update(
        hinter_queue=HandoffQueue(),
        guesser_queue=HandoffQueue(),
        guesses=[],
        hints=[],
        solved=False,
    )

    flows = build_guessing_flows()

    # The hinter moves first
    shared["hinter_queue"].put(None)
    players = [
        asyncio.create_task(flows["hinter"].run(shared, params)),
        asyncio.create_task(flows["guesser"].run(shared, params)),
    ]
    try:
        await asyncio.gather(*players)
    except BaseException:
        # The surviving player would wait on its queue forever
        for player in players:
            player.cancel()
        await asyncio.gather(*players, return_exceptions=True)
        raise

    return {
        "secret": shared["secret"],
        "solved": shared["solved"],
        "guesses": list(shared["guesses"]),
        "hints": list(shared["hints"]),
        "turns": len(shared["guesses"]),
    }
