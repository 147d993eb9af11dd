"""
CLI commands for CreatorsCook
"""
