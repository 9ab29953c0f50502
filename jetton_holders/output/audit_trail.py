"""Audit trail formatter for request transparency.

Shows every outbound attempt a run made:
- Which sources were consulted and how often they succeeded
- Throttle retries after HTTP 429
- Credential demotions after HTTP 401/403
- Data quality issues detected along the way
"""

import logging
from typing import Any

from ..core.models import AuditEntry, HolderPage, HolderSnapshot

logger = logging.getLogger(__name__)


class AuditTrailFormatter:
    """Formats audit trail information for a page or snapshot."""

    def format_summary(self, result: HolderPage | HolderSnapshot) -> str:
        """
        Format a summary of the audit trail.

        Args:
            result: Page or snapshot carrying audit data

        Returns:
            Formatted string summary
        """
        lines = []
        lines.append("=" * 70)
        lines.append("AUDIT TRAIL SUMMARY")
        lines.append("=" * 70)
        lines.append("")

        lines.append(f"Generated: {result.generated_at.isoformat()}")
        lines.append(f"Jetton: {result.meta.symbol} ({result.meta.master or 'unknown master'})")
        lines.append("")

        lines.append("DATA SOURCES CONSULTED")
        lines.append("-" * 40)
        sources_summary = self._summarize_sources(result.audit_trail)
        if not sources_summary:
            lines.append("  No outbound requests recorded")
        for source, info in sources_summary.items():
            status = "OK" if info["success_count"] > 0 else "FAILED"
            lines.append(f"  {source}: {status}")
            lines.append(f"    - Calls: {info['total_count']} ({info['success_count']} successful)")
            if info["retries"]:
                lines.append(f"    - Retries after throttling: {info['retries']}")
            if info["demotions"]:
                lines.append(f"    - Credential demotions: {info['demotions']}")
            for endpoint in info["endpoints"][:3]:
                lines.append(f"    - Endpoint: {endpoint}")
        lines.append("")

        if result.quality_flags:
            lines.append("DATA QUALITY FLAGS")
            lines.append("-" * 40)
            for flag in result.quality_flags:
                lines.append(f"  [{flag.severity.upper()}] {flag.field}")
                lines.append(f"    Issue: {flag.issue}")
            lines.append("")

        lines.append("DETAILED REQUESTS")
        lines.append("-" * 40)
        for entry in result.audit_trail:
            lines.extend(self._format_entry(entry))
        lines.append("")

        lines.append("=" * 70)
        lines.append("END OF AUDIT TRAIL")
        lines.append("=" * 70)

        return "\n".join(lines)

    @staticmethod
    def _format_entry(entry: AuditEntry) -> list[str]:
        status = "OK" if entry.success else "FAILED"
        if entry.status_code is not None:
            status += f" (HTTP {entry.status_code})"
        duration = f"{entry.duration_ms}ms" if entry.duration_ms is not None else "N/A"

        lines = [
            f"  [{entry.timestamp.strftime('%H:%M:%S')}] {entry.source.value} {entry.action}",
            f"    Endpoint: {entry.endpoint or 'N/A'}",
            f"    Status: {status}, Duration: {duration}",
        ]
        if entry.error_message:
            lines.append(f"    Error: {entry.error_message}")
        if entry.notes:
            lines.append(f"    Notes: {entry.notes}")
        return lines

    def _summarize_sources(self, entries: list[AuditEntry]) -> dict[str, dict[str, Any]]:
        """Summarize source usage from audit trail."""
        summary: dict[str, dict[str, Any]] = {}

        for entry in entries:
            source_name = entry.source.value
            if source_name not in summary:
                summary[source_name] = {
                    "total_count": 0,
                    "success_count": 0,
                    "retries": 0,
                    "demotions": 0,
                    "endpoints": [],
                }

            info = summary[source_name]
            if entry.action == "retry":
                info["retries"] += 1
                continue
            if entry.action == "demote":
                info["demotions"] += 1
                continue

            info["total_count"] += 1
            if entry.success:
                info["success_count"] += 1
            if entry.endpoint and entry.endpoint not in info["endpoints"]:
                info["endpoints"].append(entry.endpoint)

        return summary

    def format_to_file(self, result: HolderPage | HolderSnapshot, filepath: str) -> None:
        """Write audit trail to file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.format_summary(result))
