"""Apply a batch of edit blocks and aggregate the outcome into a report."""

import logging
from typing import Optional

from core.task_state import VersionGates

from .collaborators import DiffSource, EditBlockApplier, EventSink
from .errors import ApplyEditBlocksError
from .schemas import ApplyEditBlockReport, ApplyEditBlocksResult, CodeDiffEvent, EditBlock

logger = logging.getLogger(__name__)

EDIT_CODE_DIFF = "edit_code_diff"

REPORT_HEADER = "Edit block application results:\n"


def feedback_from_apply_reports(reports: list[ApplyEditBlockReport]) -> str:
    """Render per-block outcomes, keyed by edit block sequence number."""
    lines = [REPORT_HEADER]
    for report in reports:
        seq = report.original_edit_block.sequence_number
        if report.error:
            lines.append(f"- edit_block:{seq} application failed: {report.error}")
        elif not report.did_apply:
            lines.append(f"- edit_block:{seq} application failed due to unknown reasons")
        else:
            lines.append(f"- edit_block:{seq} application succeeded")
    return "\n".join(lines)


class ApplyReportAggregator:
    """Applies edit blocks through the applier and summarizes the reports."""

    def __init__(
        self,
        applier: EditBlockApplier,
        gates: VersionGates,
        diff_enabled: bool = False,
        diff_source: Optional[DiffSource] = None,
        event_sink: Optional[EventSink] = None,
    ):
        self.applier = applier
        self.gates = gates
        self.diff_enabled = diff_enabled
        self.diff_source = diff_source
        self.event_sink = event_sink

    async def apply_and_report(self, edit_blocks: list[EditBlock]) -> ApplyEditBlocksResult:
        """Apply edit blocks and build the report.

        Diff/event hook failures propagate unchanged.

        Args:
            edit_blocks: Blocks to apply, in extraction order

        Returns:
            ApplyEditBlocksResult with report text and all-applied flag

        Raises:
            ApplyEditBlocksError: The applier failed as a whole (cause attached)
        """
        try:
            reports = await self.applier.apply(edit_blocks)
        except Exception as e:
            raise ApplyEditBlocksError(str(e) or type(e).__name__) from e

        if self.gates.get_version(EDIT_CODE_DIFF) >= 1 and self.diff_enabled:
            if any(report.did_apply for report in reports):
                await self._emit_diff()

        report_message = feedback_from_apply_reports(reports)
        all_applied = all(report.did_apply for report in reports)
        applied_count = sum(1 for report in reports if report.did_apply)
        logger.info(f"Applied {applied_count}/{len(reports)} edit blocks")

        return ApplyEditBlocksResult(
            report_message=report_message,
            all_applied=all_applied,
            reports=reports,
        )

    async def _emit_diff(self) -> None:
        if self.diff_source is None or self.event_sink is None:
            logger.debug("Diff enabled but no diff source/event sink configured")
            return
        diff = await self.diff_source.diff()
        await self.event_sink.emit(CodeDiffEvent(task_id=self.gates.task_id, diff=diff))
