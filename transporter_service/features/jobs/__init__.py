"""Transporter jobs feature: submission forms and the jobs API."""
