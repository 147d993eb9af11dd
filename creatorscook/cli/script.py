"""
Script CLI Commands

Commands for creating scripts, running compliance analysis on them and
moving them through review.
"""

import asyncio
import sys
from typing import Optional

import click

from ..services.models import ScriptStatus
from ..services.script_service import ScriptService
from .display import display_analysis
from .options import user_option


@click.group(name="script")
def script_group():
    """Manage creator scripts"""
    pass


@script_group.command(name="create")
@click.option('--container', 'container_id', required=True, help='Product container ID')
@click.option('--title', required=True, help='Script title')
@click.option('--content', help='Script content')
@click.option('--content-file', type=click.Path(exists=True), help='Read content from file')
@click.option('--pack', 'pack_id', help='Virality pack ID the script is based on')
@user_option
def create_script(container_id: str, title: str, content: Optional[str], content_file: Optional[str],
                  pack_id: Optional[str], user_id: str):
    """
    Create a draft script for a product container

    Examples:
        creatorscook script create --container 3f2c... --title "Taste test" --content-file script.txt
    """
    try:
        if content_file:
            with open(content_file, 'r') as f:
                content = f.read()
        if not content:
            click.echo("❌ Error: provide --content or --content-file", err=True)
            sys.exit(1)

        script = ScriptService().create_script(user_id, container_id, title, content, virality_pack_id=pack_id)

        click.echo(f"\n✅ Created script: {script.title}")
        click.echo(f"   ID: {script.id}")
        click.echo(f"   Status: {script.status.value}")
        click.echo(f"\nCheck it with: creatorscook script analyze {script.id}")

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@script_group.command(name="list")
@click.option('--container', 'container_id', required=True, help='Product container ID')
@user_option
def list_scripts(container_id: str, user_id: str):
    """
    List scripts for a product container, most recently edited first

    Examples:
        creatorscook script list --container 3f2c...
    """
    try:
        scripts = ScriptService().get_scripts_for_container(user_id, container_id)

        if not scripts:
            click.echo("No scripts found.")
            return

        for s in scripts:
            flags = len(s.compliance_flags)
            click.echo(f"📝 {s.title} [{s.status.value}] ({s.id}) - {flags} flag{'s' if flags != 1 else ''}")

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@script_group.command(name="analyze")
@click.argument('script_id')
@click.option('--no-suggest', is_flag=True, help='Skip AI suggestions')
@user_option
def analyze_script(script_id: str, no_suggest: bool, user_id: str):
    """
    Run compliance analysis on a stored script

    The script's stored flags are replaced with the new result.

    Examples:
        creatorscook script analyze 9a1b...
        creatorscook script analyze 9a1b... --no-suggest
    """
    try:
        from ..services.compliance_service import ComplianceService

        generator = None
        if not no_suggest:
            from ..services.angle_generation_service import AngleGenerationService
            generator = AngleGenerationService()

        service = ComplianceService(angle_generator=generator, script_service=ScriptService())
        result = asyncio.run(service.analyze_script(user_id, script_id))
        display_analysis(result)

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@script_group.command(name="status")
@click.argument('script_id')
@click.option('--status', required=True, type=click.Choice([s.value for s in ScriptStatus]), help='New status')
@user_option
def update_status(script_id: str, status: str, user_id: str):
    """
    Update a script's review status

    Examples:
        creatorscook script status 9a1b... --status approved
    """
    try:
        script = ScriptService().update_script_status(user_id, script_id, ScriptStatus(status))
        click.echo(f"✅ {script.title}: {script.status.value}")
    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)
