"""
Shared output helpers for CLI commands.
"""

import click

from ..services.models import ScriptAnalysisResult


def display_analysis(result: ScriptAnalysisResult):
    """Print a compliance analysis."""
    risk_icon = {"low": "🟢", "medium": "🟡", "high": "🔴"}[result.risk_level.value]

    click.echo(f"\n{'='*60}")
    click.echo(f"{risk_icon} Risk: {result.risk_level.value.upper()}   Score: {result.overall_compliance_score:.2f}")
    click.echo(f"{'='*60}\n")

    if not result.compliance_flags:
        click.echo("✅ No compliance issues found")
    for flag in result.compliance_flags:
        where = f" @ {flag.position.start}-{flag.position.end}" if flag.position else ""
        click.echo(f"⚠️  [{flag.severity.value}] {flag.type.value}{where}: {flag.message}")
        if flag.suggestion:
            click.echo(f"   → {flag.suggestion}")

    if result.suggestions:
        click.echo(f"\n💡 Suggestions:")
        for s in result.suggestions:
            click.echo(f"   - ({s.type.value}, {s.confidence:.0%}) {s.content}")
            click.echo(f"     {s.reason}")
    click.echo()
