"""
Pytest configuration for Django tests.
"""
import os

# Set the Django settings module before pytest-django configures Django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'campus_market.settings')
