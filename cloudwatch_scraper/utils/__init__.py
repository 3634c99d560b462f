"""Utility modules for CloudWatch Scraper."""
