import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from src.utils.seo.config import (
    AHREFS_SITE_KEY,
    CAPSOLVER_API_URL,
    MAX_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    TURNSTILE_TASK_TYPE,
)
from src.utils.seo.errors import ChallengeSolveFailedError, ConfigurationMissingError
from src.utils.seo.http import make_request
from src.utils.seo.models import SolveStatus, SolveTask

logger = logging.getLogger(__name__)


def _is_pending(task: SolveTask) -> bool:
    return task.status is SolveStatus.PENDING


def _mark_timed_out(retry_state: RetryCallState) -> SolveTask:
    task = retry_state.outcome.result()
    task.status = SolveStatus.TIMED_OUT
    task.error = f"no result after {retry_state.attempt_number} polls"
    return task


class CapSolverClient:
    """
    Client for the CapSolver task API, used to solve the Cloudflare Turnstile
    challenge that guards the free Ahrefs tools.

    solve() never raises. Every failure is logged and reported as None.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = CAPSOLVER_API_URL,
        site_key: str = AHREFS_SITE_KEY,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.site_key = site_key
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.sleep = sleep

    async def solve(self, target_site_url: str) -> Optional[str]:
        """
        Solve the Turnstile challenge shown on target_site_url

        Args:
            target_site_url: Page of the free tool the token will be used for

        Returns:
            The solution token, or None if the challenge could not be solved
        """
        try:
            return await self._solve(target_site_url)
        except ConfigurationMissingError as e:
            logger.error(f"Cannot solve challenge for {target_site_url}: {e}")
        except ChallengeSolveFailedError as e:
            logger.error(f"CapSolver task failed for {target_site_url}: {e}")
        except httpx.HTTPError as e:
            logger.error(f"Error getting CapSolver token for {target_site_url}: {e}")
        return None

    async def _solve(self, target_site_url: str) -> str:
        if not self.api_key:
            raise ConfigurationMissingError("CAPSOLVER_API_KEY is not set")

        task = await self.create_task(target_site_url)
        logger.info(f"Created CapSolver task {task.task_id} for {target_site_url}")

        task = await self.wait_for_result(task)

        if task.status is SolveStatus.READY and task.token:
            return task.token
        if task.status is SolveStatus.TIMED_OUT:
            raise ChallengeSolveFailedError(
                f"task {task.task_id} timed out: {task.error}"
            )
        raise ChallengeSolveFailedError(
            f"task {task.task_id} {task.status.value}: {task.error}"
        )

    async def create_task(self, target_site_url: str) -> SolveTask:
        payload = {
            "clientKey": self.api_key,
            "task": {
                "type": TURNSTILE_TASK_TYPE,
                "websiteKey": self.site_key,
                "websiteURL": target_site_url,
                "metadata": {"action": ""},
            },
        }
        result = await make_request(
            "POST", f"{self.base_url}/createTask", json_body=payload
        )

        task_id = result.body.get("taskId") if isinstance(result.body, dict) else None
        if not task_id:
            raise ChallengeSolveFailedError(
                f"createTask returned no taskId "
                f"(status {result.status_code}): {result.body}"
            )
        return SolveTask(target_site_url=target_site_url, task_id=task_id)

    async def poll_once(self, task: SolveTask) -> SolveTask:
        """Fetch the task result once and update its status"""
        payload = {"clientKey": self.api_key, "taskId": task.task_id}
        result = await make_request(
            "POST", f"{self.base_url}/getTaskResult", json_body=payload
        )
        data: Dict[str, Any] = result.body if isinstance(result.body, dict) else {}

        status = data.get("status")
        if status == "ready":
            solution = data.get("solution")
            task.token = solution.get("token") if isinstance(solution, dict) else None
            if task.token:
                task.status = SolveStatus.READY
            else:
                task.status = SolveStatus.FAILED
                task.error = "ready result carried no token"
        elif status == "failed" or data.get("errorId"):
            task.status = SolveStatus.FAILED
            task.error = (
                data.get("errorDescription") or data.get("errorCode") or str(data)
            )
        else:
            task.status = SolveStatus.PENDING
        return task

    async def wait_for_result(self, task: SolveTask) -> SolveTask:
        """
        Poll until the task leaves the pending state

        Polls at most max_attempts times, sleeping poll_interval before each
        poll. A task still pending after the last poll is marked TIMED_OUT.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.poll_interval),
            retry=retry_if_result(_is_pending),
            retry_error_callback=_mark_timed_out,
            sleep=self.sleep,
        )
        await self.sleep(self.poll_interval)
        return await retrying(self.poll_once, task)
