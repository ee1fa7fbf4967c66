"""Shared helpers: formatting and Telegram keyboards"""
