"""
Configuration management for CreatorsCook
"""

import os
from typing import Optional, Dict
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration"""

    # Supabase
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')

    # Apify (Amazon reviews)
    APIFY_TOKEN: str = os.getenv('APIFY_TOKEN', '')
    AMAZON_REVIEWS_ACTOR: str = os.getenv('AMAZON_REVIEWS_ACTOR', 'axesso_data/amazon-reviews-scraper')
    AMAZON_MAX_PAGES: int = int(os.getenv('AMAZON_MAX_PAGES', '3'))

    # FireCrawl (TikTok Shop, AliExpress, generic product pages)
    FIRECRAWL_API_KEY: str = os.getenv('FIRECRAWL_API_KEY', '')

    # LLM providers
    ANTHROPIC_API_KEY: str = os.getenv('ANTHROPIC_API_KEY', '')
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')

    # Timeouts (seconds). External calls are never retried.
    COMPLETION_TIMEOUT_SECONDS: float = float(os.getenv('COMPLETION_TIMEOUT_SECONDS', '90'))
    SCRAPE_TIMEOUT_SECONDS: int = int(os.getenv('SCRAPE_TIMEOUT_SECONDS', '300'))
    DATABASE_TIMEOUT_SECONDS: int = int(os.getenv('DATABASE_TIMEOUT_SECONDS', '30'))

    # Credits
    DEFAULT_ANGLE_CREDITS: int = int(os.getenv('DEFAULT_ANGLE_CREDITS', '3'))

    # CLI
    DEFAULT_USER_ID: str = os.getenv('CREATORSCOOK_USER_ID', '')

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'SUPABASE_URL': cls.SUPABASE_URL,
            'SUPABASE_SERVICE_KEY': cls.SUPABASE_SERVICE_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    # ========================================================================
    # Model Configuration
    # ========================================================================

    DEFAULT_MODEL = "anthropic:claude-sonnet-4-5-20250929"
    FAST_MODEL = "anthropic:claude-sonnet-4-20250514"
    OPENAI_MODEL = "openai:gpt-4o"

    # Generation defaults per call site: (temperature, max_tokens)
    GENERATION_DEFAULTS: Dict[str, tuple] = {
        "angles": (0.7, 4000),
        "additional_packs": (0.8, 2000),
        "suggestions": (0.3, 1000),
    }

    @classmethod
    def get_model(cls, key: str) -> str:
        """
        Get the configured LLM model for a component.

        Resolution order:
        1. Environment variable {KEY}_MODEL (e.g. ANGLE_MODEL)
        2. Default mapping in this method
        3. Config.DEFAULT_MODEL

        Args:
            key: component name ('angle', 'suggestion'), case-insensitive

        Returns:
            Model string identifier (e.g. 'anthropic:claude-sonnet-4-5-20250929')
        """
        key_upper = key.upper()

        env_model = os.getenv(f"{key_upper}_MODEL")
        if env_model:
            return env_model

        mappings = {
            "ANGLE": cls.DEFAULT_MODEL,
            "SUGGESTION": cls.DEFAULT_MODEL,
            "FAST": cls.FAST_MODEL,
            "OPENAI": cls.OPENAI_MODEL,
        }

        return mappings.get(key_upper, cls.DEFAULT_MODEL)

    @classmethod
    def generation_params(cls, call_site: str) -> tuple:
        """Return (temperature, max_tokens) for a generation call site."""
        return cls.GENERATION_DEFAULTS.get(call_site, (0.7, 2000))

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        return getattr(cls, key, default)
