"""
Shelter Service — Saga ランナー

Saga パターン（オーケストレーション型）:
  前進ステップを順番に実行し、途中で失敗（またはキャンセル）したら
  完了済みのステップを逆順に補償して整合性を保つ。

  ┌──────────────────────────────────────────────────────┐
  │  step 1 ──▶ step 2 ──▶ step 3                         │
  │                 │ 失敗                                 │
  │                 ▼                                      │
  │        compensate 1 (逆順に補償)                       │
  └──────────────────────────────────────────────────────┘

各ステップの経過は saga_log に記録する。
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

Forward = Callable[[], Awaitable[Any]]
Compensate = Callable[[Any], Awaitable[None]]


@dataclass
class SagaStep:
    action: str
    forward: Forward
    compensate: Compensate | None = None


class Saga:
    """順序付きの前進ステップと補償ステップを持つ Saga"""

    def __init__(self, name: str) -> None:
        self.name = name
        self.saga_log: list[dict] = []
        self.compensated = False
        self._steps: list[SagaStep] = []

    def step(
        self,
        action: str,
        forward: Forward,
        compensate: Compensate | None = None,
    ) -> "Saga":
        self._steps.append(SagaStep(action, forward, compensate))
        return self

    async def run(self) -> list[Any]:
        """
        全ステップを順に実行し、各ステップの戻り値を返す。

        失敗時は補償を実行してから元の例外を再送出する。
        補償はキャンセルから保護(shield)して最後まで走らせる。
        """
        completed: list[tuple[SagaStep, Any]] = []
        results: list[Any] = []

        for step in self._steps:
            entry = self._append_log(step.action)
            try:
                result = await step.forward()
            except (Exception, asyncio.CancelledError) as e:
                entry["status"] = "FAILED"
                entry["error"] = str(e) or type(e).__name__
                if completed:
                    await asyncio.shield(self._compensate(completed))
                raise
            entry["status"] = "COMPLETED"
            completed.append((step, result))
            results.append(result)

        return results

    async def _compensate(self, completed: list[tuple[SagaStep, Any]]) -> None:
        self.compensated = True
        logger.warning("Saga %s failed, compensating %d step(s)", self.name, len(completed))

        for step, result in reversed(completed):
            if step.compensate is None:
                continue
            entry = self._append_log(f"{step.action} (COMPENSATING)")
            try:
                await step.compensate(result)
                entry["status"] = "COMPENSATED"
            except Exception as e:
                # 補償の失敗は記録して残りの補償を続ける
                entry["status"] = "FAILED"
                entry["error"] = str(e) or type(e).__name__
                logger.exception("Saga %s: compensation of %s failed", self.name, step.action)

    def _append_log(self, action: str) -> dict:
        entry = {
            "step": len(self.saga_log) + 1,
            "action": action,
            "status": "EXECUTING",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.saga_log.append(entry)
        return entry
