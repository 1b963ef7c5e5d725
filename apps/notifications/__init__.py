"""Notifications app package.

In-app notifications written by booking, cancellation and invoice flows,
the notification inbox API, and booking confirmation e-mails.
"""
