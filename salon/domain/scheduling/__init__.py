"""Scheduling domain - working hours, slot generation and availability"""
