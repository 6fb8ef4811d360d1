"""API Gateway Service.

Single entry point in front of the user, worksheet, payment and notification services.
"""
