"""Batch execution records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from brandlens.schemas.judgments import StructuredJudgment
from brandlens.schemas.llm import FailureKind, RawResponse
from brandlens.schemas.prompts import PipelineType, PromptInstance


class CellStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BatchState(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class BatchCell:
    """Result of one (model, prompt, run) unit of work."""
    model_id: str
    provider: str
    prompt: PromptInstance
    run_index: int = 0
    status: CellStatus = CellStatus.FAILED
    response: Optional[RawResponse] = None
    failure_kind: Optional[FailureKind] = None
    error: Optional[str] = None
    judgment: Optional[StructuredJudgment] = None

    @property
    def pipeline_type(self) -> PipelineType:
        return self.prompt.pipeline_type

    @property
    def succeeded(self) -> bool:
        return self.status == CellStatus.SUCCEEDED

    def diagnostic(self) -> Dict[str, Any]:
        return {
            "model_id": self.model_id,
            "provider": self.provider,
            "prompt_id": self.prompt.id,
            "pipeline_type": self.prompt.pipeline_type.value,
            "run_index": self.run_index,
            "status": self.status.value,
            "failure_kind": self.failure_kind.value if self.failure_kind else None,
            "error": self.error,
        }


@dataclass
class BatchExecution:
    """A single orchestrator run over selected models x prompt instances."""
    project_id: str
    id: str = field(default_factory=lambda: str(uuid4()))
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    cells: List[BatchCell] = field(default_factory=list)
    state: BatchState = BatchState.FAILED
    cancelled: bool = False
    skipped_prompts: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded_cells(self) -> List[BatchCell]:
        return [cell for cell in self.cells if cell.status == CellStatus.SUCCEEDED]

    @property
    def failed_cells(self) -> List[BatchCell]:
        return [cell for cell in self.cells if cell.status == CellStatus.FAILED]

    @property
    def cancelled_cells(self) -> List[BatchCell]:
        return [cell for cell in self.cells if cell.status == CellStatus.CANCELLED]

    def cells_for(self, pipeline_type: PipelineType) -> List[BatchCell]:
        return [cell for cell in self.cells if cell.prompt.pipeline_type == pipeline_type]

    def diagnostics(self) -> List[Dict[str, Any]]:
        return [cell.diagnostic() for cell in self.cells if not cell.succeeded]

    @staticmethod
    def classify(cells: List[BatchCell]) -> BatchState:
        """Complete if every cell succeeded, failed if none did, partial otherwise."""
        succeeded = sum(1 for cell in cells if cell.status == CellStatus.SUCCEEDED)
        if cells and succeeded == len(cells):
            return BatchState.COMPLETE
        if succeeded == 0:
            return BatchState.FAILED
        return BatchState.PARTIAL
