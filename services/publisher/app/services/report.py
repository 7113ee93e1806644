"""Per-product report text for Slack."""

from __future__ import annotations

from app.schemas.catalog import STATUS_ACTIVE, STATUS_DRAFT
from app.services.compliance import ComplianceResult, IssueRow
from app.services.workflow import WorkflowOutcome
from app.tenants import TenantConfig

TABLE_HEADER = ("Variant", "SKU", "Main Item Exists", "HS Code", "Country of Origin (MF)")
TABLE_SEPARATOR = "   "
_EMPHASISED = {"N/A", "No", "Fill in"}


def format_numbered(lines: list[str]) -> str:
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines, start=1))


def _emph(value: str | None) -> str:
    out = str(value) if value and str(value).strip() else "N/A"
    return f"* {out} *" if out in _EMPHASISED else out


def build_variant_issue_table(rows: list[IssueRow], country_of_origin: str | None) -> str:
    """Fixed-width, code-fenced table of variants with issues; '' when there are none."""
    if not rows:
        return ""
    data = [
        [_emph(r.label), _emph(r.sku), _emph(r.main_exists), _emph(r.hs), _emph(country_of_origin)]
        for r in rows
    ]
    widths = [max([len(h)] + [len(d[i]) for d in data]) for i, h in enumerate(TABLE_HEADER)]

    def line(cols) -> str:
        return TABLE_SEPARATOR.join(str(c).ljust(widths[i]) for i, c in enumerate(cols))

    hr = TABLE_SEPARATOR.join("-" * w for w in widths)
    body = "\n".join([line(TABLE_HEADER), hr] + [line(d) for d in data])
    return f"```\n{body}\n```"


def webhook_block(lines: list[str]) -> str:
    if not lines:
        return ""
    return "\n\nMake Webhook Stats -\n" + "\n".join(f"- {line}" for line in lines)


def notes_block(notes: list[str]) -> str:
    return "".join(f"\n{note}" for note in notes)


def _pass_phrase(status: str, dry_run: bool) -> str:
    if status == STATUS_DRAFT:
        if dry_run:
            return "would be set to ACTIVE after all checks passed."
        return "set to ACTIVE after all checks passed."
    if status == STATUS_ACTIVE:
        return "already ACTIVE; no status change. All checks passed."
    return f"checks passed; status unchanged ({status})."


def build_throttled_report(tenant: TenantConfig, title: str) -> str:
    return (
        f'{tenant.report_prefix} - Product "{title}" check aborted: Shopify API still throttled. '
        "Pending changes kept for the next run."
    )


def build_report(
    tenant: TenantConfig,
    title: str,
    *,
    webhook_lines: list[str],
    result: ComplianceResult | None = None,
    outcome: WorkflowOutcome | None = None,
    dry_run: bool = False,
) -> str | None:
    """Assemble the report for one product, or None when there is nothing to say."""
    head = f'{tenant.report_prefix} - Product "{title}"'
    block = webhook_block(webhook_lines)

    if result is None:
        if not webhook_lines:
            return None
        return f"{head} tests processed.{block}"

    notes = list(result.notes)
    if outcome is not None:
        notes.extend(outcome.notes)

    if result.passed:
        status = outcome.transition.current if outcome else ""
        return f"{head} {_pass_phrase(status, dry_run)}{block}{notes_block(notes)}"

    header = "failed checks:"
    if result.reasons:
        header = f"failed checks:\n{format_numbered(result.reasons)}"
    table = build_variant_issue_table(result.issue_rows, result.country_of_origin)
    table_block = f"\n\n{table}" if table else ""
    draft_note = ""
    if outcome is not None and outcome.transition.current == STATUS_ACTIVE and outcome.transition.changes_status:
        draft_note = "\n\nAction: Product has been set to DRAFT from ACTIVE."
    return f"{head} {header}{table_block}{block}{draft_note}{notes_block(notes)}"
