"""
Product container commands for CreatorsCook CLI
"""

import asyncio
import sys
from typing import Optional, Tuple

import click

from ..services.ingestion_service import IngestionService
from ..services.models import BrandRuleSet
from ..services.product_container_service import ProductContainerService
from .options import user_option

STATUS_ICONS = {
    'pending': '⏳',
    'scraping': '🔎',
    'analyzing': '🧠',
    'completed': '✅',
    'failed': '❌',
}


@click.group('product')
def product_group():
    """Manage product containers"""
    pass


@product_group.command('create')
@click.argument('url')
@user_option
@click.option('--ingest', is_flag=True, help='Start ingestion right away')
def create_product(url: str, user_id: str, ingest: bool):
    """
    Create a product container from a product URL

    External (non TikTok Shop / Amazon / AliExpress) URLs use one angle credit.

    Examples:
        creatorscook product create https://www.amazon.com/dp/B0DJWSV1J3
        creatorscook product create https://shop.example.com/item --ingest
    """
    try:
        container = ProductContainerService().create_container(user_id, url)

        click.echo(f"\n✅ Created product container")
        click.echo(f"   ID: {container.id}")
        click.echo(f"   Platform: {container.platform.value}")
        click.echo(f"   Status: {container.status.value}")

        if ingest:
            _run_ingestion(container.id, user_id)
        else:
            click.echo(f"\nStart ingestion with: creatorscook product ingest {container.id}")

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@product_group.command('list')
@user_option
def list_products(user_id: str):
    """
    List your product containers

    Examples:
        creatorscook product list
    """
    try:
        containers = ProductContainerService().list_containers(user_id)

        if not containers:
            click.echo("No product containers found.")
            click.echo("\nCreate one with: creatorscook product create <url>")
            return

        click.echo(f"\n{'='*60}")
        click.echo(f"📦 Product Containers ({len(containers)})")
        click.echo(f"{'='*60}\n")

        for c in containers:
            icon = STATUS_ICONS.get(c.status.value, '•')
            click.echo(f"{icon} {c.product_name or c.product_url}")
            click.echo(f"   ID: {c.id}")
            click.echo(f"   Platform: {c.platform.value}   Status: {c.status.value}")
            if c.error_message:
                click.echo(f"   Note: {c.error_message}")
            click.echo()

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@product_group.command('show')
@click.argument('container_id')
@user_option
def show_product(container_id: str, user_id: str):
    """
    Show a product container with its insights, packs and scripts

    Examples:
        creatorscook product show 3f2c...
    """
    try:
        detail = asyncio.run(ProductContainerService().get_container_with_analysis(user_id, container_id))
        container = detail['container']

        click.echo(f"\n{'='*60}")
        click.echo(f"📦 {container.product_name or container.product_url}")
        click.echo(f"{'='*60}\n")

        click.echo(f"URL: {container.product_url}")
        click.echo(f"Platform: {container.platform.value}")
        click.echo(f"Status: {STATUS_ICONS.get(container.status.value, '')} {container.status.value}")
        if container.error_message:
            click.echo(f"Note: {container.error_message}")

        click.echo(f"\n😣 Pain Points ({len(detail['pain_points'])}):")
        for p in detail['pain_points']:
            click.echo(f"   - {p['theme']} ({p['mentions']} mentions, sentiment {p['sentiment']:.2f})")

        click.echo(f"\n😍 Delight Factors ({len(detail['delight_factors'])}):")
        for d in detail['delight_factors']:
            click.echo(f"   - {d['theme']} ({d['mentions']} mentions, sentiment {d['sentiment']:.2f})")

        click.echo(f"\n🚀 Virality Packs ({len(detail['virality_packs'])}):")
        for pack in detail['virality_packs']:
            click.echo(f"   - {pack['angle_name']} (virality {pack['virality_score']:.2f})")
            click.echo(f"     {pack['core_angle']}")
            for hook in pack.get('hook_options') or []:
                click.echo(f"       • {hook}")

        rules = detail['brand_rules']
        if rules:
            click.echo(f"\n📏 Brand Rules:")
            click.echo(f"   Forbidden: {', '.join(rules.forbidden_keywords) or '-'}")
            click.echo(f"   Required: {', '.join(rules.required_keywords) or '-'}")
            click.echo(f"   Custom: {len(rules.custom_rules)}")

        click.echo(f"\n📝 Scripts ({len(detail['scripts'])}):")
        for s in detail['scripts']:
            click.echo(f"   - {s['title']} [{s['status']}] ({s['id']})")
        click.echo()

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


def _run_ingestion(container_id: str, user_id: str):
    click.echo(f"\n🔎 Ingesting product {container_id}...")
    result = asyncio.run(IngestionService().start_ingestion(container_id, user_id))

    if result.get('status') != 'success':
        click.echo(f"❌ Ingestion failed at {result.get('step')}: {result.get('error')}", err=True)
        sys.exit(1)

    click.echo(f"✅ Ingestion complete")
    click.echo(f"   Reviews: {result['review_count']}")
    click.echo(f"   Pain points: {result['pain_points']}   Delight factors: {result['delight_factors']}")
    click.echo(f"   Virality packs: {result['pack_count']}")
    if result.get('used_fallback'):
        click.echo(f"   ⚠️  Model output was unusable; a default pack was stored")
    if result.get('warning'):
        click.echo(f"   ⚠️  {result['warning']}")


@product_group.command('ingest')
@click.argument('container_id')
@user_option
def ingest_product(container_id: str, user_id: str):
    """
    Scrape, aggregate insights and generate virality packs

    Re-running a completed or failed container replaces its insights and packs.

    Examples:
        creatorscook product ingest 3f2c...
    """
    try:
        _run_ingestion(container_id, user_id)
    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@product_group.command('regenerate')
@click.argument('container_id')
@user_option
@click.option('--focus', multiple=True, help='Theme to focus on, e.g. taste (repeatable)')
@click.option('--tone', help='Tone, e.g. humorous, serious, educational, inspirational')
@click.option('--length', 'target_length', type=click.Choice(['short', 'medium', 'long']), help='Target video length')
def regenerate_packs(container_id: str, user_id: str, focus: Tuple[str, ...], tone: Optional[str], target_length: Optional[str]):
    """
    Regenerate virality packs from existing insights

    Examples:
        creatorscook product regenerate 3f2c... --focus taste --tone humorous --length short
    """
    try:
        from ..pipelines.dependencies import IngestionDependencies

        angles = IngestionDependencies.create().angles
        analysis = asyncio.run(angles.regenerate_packs(
            container_id,
            focus_areas=list(focus),
            tone=tone,
            target_length=target_length,
            user_id=user_id,
        ))

        click.echo(f"\n✅ Generated {len(analysis.virality_packs)} virality packs")
        for pack in analysis.virality_packs:
            click.echo(f"   - {pack.angle_name} (virality {pack.virality_score:.2f})")
        if analysis.used_fallback:
            click.echo(f"   ⚠️  Model output was unusable; a default pack was stored")

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@product_group.command('cancel')
@click.argument('container_id')
@user_option
def cancel_ingestion(container_id: str, user_id: str):
    """
    Cancel an in-flight ingestion (marks the container failed)

    Examples:
        creatorscook product cancel 3f2c...
    """
    try:
        container = IngestionService().cancel_ingestion(container_id, user_id)
        click.echo(f"🛑 {container.id}: {container.status.value} ({container.error_message})")
    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@product_group.command('rules')
@click.argument('container_id')
@user_option
@click.option('--forbidden', '-f', multiple=True, help='Forbidden keyword (repeatable)')
@click.option('--required', '-r', multiple=True, help='Required keyword (repeatable)')
@click.option('--rule', multiple=True, help='Custom guideline (repeatable)')
def set_brand_rules(container_id: str, user_id: str, forbidden: Tuple[str, ...], required: Tuple[str, ...], rule: Tuple[str, ...]):
    """
    Replace a container's brand rules

    Examples:
        creatorscook product rules 3f2c... -f "cheap" -r "#ad" --rule "Never mention competitors"
    """
    try:
        rules = ProductContainerService().update_brand_rules(
            user_id,
            container_id,
            BrandRuleSet(
                forbidden_keywords=list(forbidden),
                required_keywords=list(required),
                custom_rules=list(rule),
            ),
        )
        click.echo(f"✅ Brand rules updated")
        click.echo(f"   Forbidden: {', '.join(rules.forbidden_keywords) or '-'}")
        click.echo(f"   Required: {', '.join(rules.required_keywords) or '-'}")
        click.echo(f"   Custom: {len(rules.custom_rules)}")
    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@product_group.command('stats')
@user_option
def product_stats(user_id: str):
    """
    Show totals, average scores and remaining credits

    Examples:
        creatorscook product stats
    """
    try:
        stats = ProductContainerService().get_user_analytics(user_id)

        click.echo(f"\n{'='*60}")
        click.echo(f"📊 Analytics")
        click.echo(f"{'='*60}\n")
        click.echo(f"Products: {stats.total_products} ({stats.completed_analyses} analyzed)")
        click.echo(f"Scripts: {stats.total_scripts}")
        click.echo(f"Avg sentiment: {stats.average_sentiment_score:.2f}")
        click.echo(f"Avg virality: {stats.average_virality_score:.2f}")
        click.echo(f"Credits: {stats.credits_remaining} remaining, {stats.credits_used} used")
        click.echo()
    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@product_group.command('packs')
@click.argument('container_id')
@user_option
def show_packs(container_id: str, user_id: str):
    """
    Show a container's virality packs and their score summary

    Examples:
        creatorscook product packs 3f2c...
    """
    try:
        from ..pipelines.dependencies import IngestionDependencies

        deps = IngestionDependencies.create()
        deps.containers.get_container(container_id, user_id)
        packs = deps.angles.get_virality_packs(container_id)
        summary = deps.angles.get_virality_analytics(container_id)

        click.echo(f"\n{'='*60}")
        click.echo(f"🚀 Virality Packs ({summary['total_packs']})")
        click.echo(f"{'='*60}\n")

        for pack in packs:
            click.echo(f"🎬 {pack.angle_name}  (virality {pack.virality_score:.2f}, sentiment {pack.sentiment_score:+.2f})")
            click.echo(f"   {pack.core_angle}")
            for hook in pack.hook_options:
                click.echo(f"   • {hook}")
            if pack.audio_suggestion:
                click.echo(f"   🎵 {pack.audio_suggestion}")
            click.echo()

        dist = summary['sentiment_distribution']
        click.echo(f"Avg virality: {summary['average_virality_score']:.2f}   Avg sentiment: {summary['average_sentiment_score']:.2f}")
        click.echo(f"Sentiment: {dist['positive']} positive, {dist['neutral']} neutral, {dist['negative']} negative")
        if summary['top_performing_angles']:
            click.echo(f"Top angles: {', '.join(summary['top_performing_angles'])}")

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)
