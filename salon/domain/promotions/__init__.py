"""Promotion domain - discount codes"""
