"""Appointment domain - booking and the appointment lifecycle"""
