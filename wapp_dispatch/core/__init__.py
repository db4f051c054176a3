"""Core infrastructure - connections, logging, errors"""
