"""Fan a set of prompt instances out to a set of selected models."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from brandlens.core.adapters.registry import ModelBinding
from brandlens.core.config import BatchSettings
from brandlens.core.context import RunContext
from brandlens.core.exceptions import ProviderUnavailableError
from brandlens.schemas.batch import BatchCell, BatchExecution, BatchState, CellStatus
from brandlens.schemas.llm import FailureKind
from brandlens.schemas.prompts import ProjectContext, PromptInstance
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BatchOrchestrator:
    """Runs every (model x prompt x run) cell concurrently and collects the results.

    Cells wait on their adapter's limiter, which is shared by every batch in
    the process, so concurrent batches together stay under the per-provider
    ceiling. Cell failures are recorded on the cell and never abort the batch.
    """

    def __init__(self, settings: Optional[BatchSettings] = None):
        self.settings = settings or BatchSettings()

    async def run_batch(
        self,
        project: ProjectContext,
        selected_models: List[ModelBinding],
        prompts: List[PromptInstance],
        cancel_event: Optional[asyncio.Event] = None,
        context: Optional[RunContext] = None,
    ) -> BatchExecution:
        """Run every cell and classify the execution.

        Args:
            project: Project the batch belongs to
            selected_models: Models bound to available adapters
            prompts: Rendered prompt instances
            cancel_event: Setting it abandons in-flight cells as cancelled
            context: Run context accumulating usage for this batch

        Returns:
            BatchExecution with one cell per model x prompt x run
        """
        execution = BatchExecution(project_id=project.project_id)
        execution.started_at = datetime.now(timezone.utc)

        cells = [
            BatchCell(
                model_id=binding.model_id,
                provider=binding.provider,
                prompt=prompt,
                run_index=run_index,
            )
            for binding in selected_models
            for prompt in prompts
            for run_index in range(self.settings.runs_per_model)
        ]
        bindings = {binding.model_id: binding for binding in selected_models}

        LOGGER.info(
            f"Starting batch {execution.id}: {len(selected_models)} models x "
            f"{len(prompts)} prompts x {self.settings.runs_per_model} runs"
        )

        tasks = {
            asyncio.create_task(self._run_cell(bindings[cell.model_id], cell, context)): cell
            for cell in cells
        }
        try:
            execution.cancelled = await self._wait(list(tasks), cancel_event)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for task, cell in tasks.items():
            if task.cancelled():
                cell.status = CellStatus.CANCELLED
                cell.failure_kind = FailureKind.CANCELLED
                cell.error = "Batch cancelled before the cell completed"

        execution.cells = cells
        execution.state = BatchExecution.classify(cells)
        execution.finished_at = datetime.now(timezone.utc)

        LOGGER.info(
            f"Batch {execution.id} finished {execution.state.value}: "
            f"{len(execution.succeeded_cells)} succeeded, {len(execution.failed_cells)} failed, "
            f"{len(execution.cancelled_cells)} cancelled"
        )
        return execution

    async def _wait(self, tasks: List[asyncio.Task], cancel_event: Optional[asyncio.Event]) -> bool:
        """Wait for all tasks; return True if the batch was cut short."""
        if not tasks:
            return False

        loop = asyncio.get_running_loop()
        timeout = self.settings.batch_timeout_seconds
        deadline = loop.time() + timeout if timeout else None
        stopper = asyncio.create_task(cancel_event.wait()) if cancel_event else None
        pending = set(tasks)

        try:
            while pending:
                waiters = pending | {stopper} if stopper else pending
                remaining = None if deadline is None else deadline - loop.time()
                if remaining is not None and remaining <= 0:
                    LOGGER.warning(f"Batch timeout of {timeout}s reached; cancelling {len(pending)} cells")
                    return True
                done, _ = await asyncio.wait(
                    waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                if stopper is not None and stopper in done:
                    LOGGER.warning(f"Batch cancelled; abandoning {len(pending)} cells")
                    return True
                pending -= done
            return False
        finally:
            if stopper is not None and not stopper.done():
                stopper.cancel()

    async def _run_cell(
        self, binding: ModelBinding, cell: BatchCell, context: Optional[RunContext]
    ) -> BatchCell:
        timeout = self.settings.cell_timeout_seconds
        options = binding.spec.call_options(timeout=timeout)

        async with binding.adapter.limiter(self.settings.concurrency_for(binding.provider)):
            try:
                response = await asyncio.wait_for(
                    binding.adapter.call(cell.prompt.text, options, prompt_id=cell.prompt.id, context=context),
                    timeout=timeout + 1,
                )
            except asyncio.TimeoutError:
                cell.status = CellStatus.FAILED
                cell.failure_kind = FailureKind.TIMEOUT
                cell.error = f"Cell timed out after {timeout}s"
                return cell
            except ProviderUnavailableError as e:
                cell.status = CellStatus.FAILED
                cell.failure_kind = FailureKind.PROVIDER_ERROR
                cell.error = str(e)
                return cell
            except Exception as e:
                LOGGER.error(f"Unexpected error in cell {cell.model_id}/{cell.prompt.id}: {e}", exc_info=True)
                cell.status = CellStatus.FAILED
                cell.failure_kind = FailureKind.PROVIDER_ERROR
                cell.error = str(e)
                return cell

        cell.response = response
        if response.success:
            cell.status = CellStatus.SUCCEEDED
        else:
            cell.status = CellStatus.FAILED
            cell.failure_kind = response.failure_kind or FailureKind.PROVIDER_ERROR
            cell.error = response.error
        return cell
