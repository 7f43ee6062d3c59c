#!/usr/bin/env python3
"""Drive survey engines against a live survey server.

Acts as N respondents: each one boots a :class:`SurveyEngine` over
:class:`HttpSurveyBackend`, answers every question with a random valid
answer, waits out the dwell countdown and submits.  A second bootstrap per
respondent then checks that the server reports the survey as complete, so
the survey is never offered twice.

Usage::

    # Start the server first
    survey-server

    # Five sentiment respondents for the current month
    python scripts/simulate_respondent.py -n 5

    # HR feedback survey, verbose, reproducible
    python scripts/simulate_respondent.py --survey hr-feedback -v --seed 42
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
import time
import uuid
from dataclasses import dataclass
from typing import Any

import httpx
from rich.console import Console
from rich.table import Table

from survey_engine import (
    EngineStatus,
    HttpSurveyBackend,
    InMemoryStore,
    SurveyEngine,
    open_hr_feedback_survey,
    open_sentiment_survey,
)
from survey_engine.models.question import (
    BaseQuestion,
    BoundedAmountQuestion,
    FreeTextQuestion,
)

FREE_TEXT_POOL = [
    "More focus time would help.",
    "The team has been very supportive.",
    "Clearer priorities from leadership.",
    "Nothing in particular this month.",
    "Fewer meetings, please.",
]


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------

def random_answer(question: BaseQuestion, rng: random.Random) -> Any:
    """A random valid answer for any question type."""
    if isinstance(question, FreeTextQuestion):
        return rng.choice(FREE_TEXT_POOL)
    if isinstance(question, BoundedAmountQuestion):
        steps = int((question.max_value - question.min_value) / question.step)
        return question.min_value + rng.randint(0, steps) * question.step
    return rng.choice(question.options).value


# ---------------------------------------------------------------------------
# Respondent run
# ---------------------------------------------------------------------------

@dataclass
class RespondentResult:
    respondent_id: str
    instance_key: str = ""
    answered: int = 0
    final_status: str = ""
    recheck_status: str = ""
    error: str | None = None
    elapsed: float = 0.0

    @property
    def passed(self) -> bool:
        return (
            self.error is None
            and self.final_status == EngineStatus.SEALED.value
            and self.recheck_status == EngineStatus.ALREADY_COMPLETE.value
        )


def open_engine(
    survey: str, backend: HttpSurveyBackend, respondent_id: str, dwell_tick: float,
) -> SurveyEngine:
    options = {"dwell_tick_seconds": dwell_tick}
    if survey == "hr-feedback":
        return open_hr_feedback_survey(
            backend, InMemoryStore(), hr_user_id=respondent_id, **options,
        )
    return open_sentiment_survey(
        backend, InMemoryStore(), employee_id=respondent_id, **options,
    )


async def run_respondent(
    backend: HttpSurveyBackend,
    survey: str,
    rng: random.Random,
    dwell_tick: float,
    console: Console,
    verbose: bool,
) -> RespondentResult:
    result = RespondentResult(respondent_id=f"sim-{uuid.uuid4().hex[:8]}")
    start = time.monotonic()

    engine = open_engine(survey, backend, result.respondent_id, dwell_tick)
    try:
        view = await engine.start()
        result.instance_key = view.instance_key
        while view.status is EngineStatus.ACTIVE:
            question = view.current_question
            value = random_answer(question, rng)
            await engine.answer(question.id, value)
            result.answered += 1
            if verbose:
                console.print(f"  [dim]{question.id}[/] {question.text} → [cyan]{value!r}[/]")
            await engine.gate.wait()
            view = await (engine.submit() if view.is_last else engine.next_question())
            if view.error:
                result.error = view.error
                break
        result.final_status = view.status.value
    finally:
        await engine.close()

    # A fresh engine must see the survey as already completed
    recheck = open_engine(survey, backend, result.respondent_id, dwell_tick)
    try:
        result.recheck_status = (await recheck.start()).status.value
    finally:
        await recheck.close()

    result.elapsed = time.monotonic() - start
    return result


def print_summary(console: Console, results: list[RespondentResult]) -> None:
    table = Table(title="Respondents", show_lines=False)
    table.add_column("Respondent")
    table.add_column("Instance")
    table.add_column("Answered", justify="right")
    table.add_column("Final")
    table.add_column("Recheck")
    table.add_column("Time", justify="right")
    table.add_column("Result")

    for r in results:
        table.add_row(
            r.respondent_id,
            r.instance_key,
            str(r.answered),
            r.final_status,
            r.recheck_status,
            f"{r.elapsed:.1f}s",
            "[green]PASS[/]" if r.passed else f"[red]FAIL[/] {r.error or ''}",
        )
    console.print(table)

    passed = sum(1 for r in results if r.passed)
    colour = "green" if passed == len(results) else "red"
    console.print(f"[bold {colour}]{passed}/{len(results)} respondents passed[/]")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate survey respondents against a running survey server.",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8080",
        help="Survey server base URL (default: %(default)s)",
    )
    parser.add_argument(
        "--survey", choices=["sentiment", "hr-feedback"], default="sentiment",
        help="Which survey to take (default: %(default)s)",
    )
    parser.add_argument(
        "-n", "--respondents", type=int, default=3,
        help="Number of simulated respondents (default: %(default)s)",
    )
    parser.add_argument(
        "--dwell-tick", type=float, default=0.05,
        help="Seconds per dwell countdown unit (default: %(default)s)",
    )
    parser.add_argument("--token", default=None, help="Bearer token to forward")
    parser.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print every answer")
    return parser.parse_args()


async def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    console = Console()
    rng = random.Random(args.seed)

    async with httpx.AsyncClient(base_url=args.base_url, timeout=args.timeout) as client:
        try:
            health = await client.get("/health")
            healthy = health.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            healthy = False
        if not healthy:
            console.print(f"[red]Server at {args.base_url} is not reachable.[/]")
            sys.exit(1)

        backend = HttpSurveyBackend(client, token=args.token)
        results = []
        for i in range(1, args.respondents + 1):
            console.print(f"[bold]Respondent {i}/{args.respondents}[/]")
            results.append(
                await run_respondent(
                    backend, args.survey, rng, args.dwell_tick, console, args.verbose,
                )
            )

    print_summary(console, results)
    if not all(r.passed for r in results):
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
