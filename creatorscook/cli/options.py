"""
Shared click options.
"""

import click

from ..core.config import Config

# Default comes from CREATORSCOOK_USER_ID (environment or .env)
user_option = click.option(
    '--user', '-u', 'user_id',
    default=lambda: Config.DEFAULT_USER_ID or None,
    required=True,
    help='User ID (defaults to CREATORSCOOK_USER_ID)'
)
