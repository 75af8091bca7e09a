"""Notification domain - delivery ports for email and realtime channels"""
