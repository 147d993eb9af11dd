"""
Main CLI entry point for CreatorsCook
"""

import asyncio
import logging
import sys
from typing import Tuple

import click

from ..core.observability import setup_logfire
from ..services.compliance_service import ComplianceService
from ..services.models import BrandRuleSet
from .display import display_analysis
from .product import product_group
from .script import script_group


@click.group()
@click.version_option(version='0.1.0')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
def cli(verbose: bool):
    """
    CreatorsCook - Review insights, virality angles and script compliance

    Turn product reviews into short-form video angles and keep creator
    scripts within platform policy and brand rules.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    setup_logfire()


@cli.command('check')
@click.argument('file', type=click.File('r'), default='-')
@click.option('--forbidden', '-f', multiple=True, help='Forbidden brand keyword (repeatable)')
@click.option('--required', '-r', multiple=True, help='Required brand keyword (repeatable)')
@click.option('--rule', multiple=True, help='Custom brand guideline for suggestions (repeatable)')
@click.option('--suggest', is_flag=True, help='Ask the AI for replacement suggestions')
def check_command(file, forbidden: Tuple[str, ...], required: Tuple[str, ...], rule: Tuple[str, ...], suggest: bool):
    """
    Check a script for platform and brand compliance

    Reads FILE, or stdin when FILE is omitted. Nothing is stored.

    Examples:
        creatorscook check script.txt
        creatorscook check script.txt -f "competitor" -r "#ad" --suggest
        cat script.txt | creatorscook check
    """
    try:
        content = file.read()

        rules = BrandRuleSet(
            forbidden_keywords=list(forbidden),
            required_keywords=list(required),
            custom_rules=list(rule),
        )

        generator = None
        if suggest:
            from ..services.angle_generation_service import AngleGenerationService
            generator = AngleGenerationService()

        result = asyncio.run(ComplianceService(angle_generator=generator).check(content, rules, with_suggestions=suggest))
        display_analysis(result)

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


# Register command groups
cli.add_command(product_group)
cli.add_command(script_group)


if __name__ == '__main__':
    cli()
