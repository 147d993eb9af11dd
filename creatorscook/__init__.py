"""
CreatorsCook - Product review insights, virality angles and script compliance

Turns a product URL into customer pain points and delight factors, generates
short-form video angles ("virality packs") from them, and checks creator
scripts against platform policy and brand rules.
"""

__version__ = "0.1.0"
__author__ = "CreatorsCook Team"
