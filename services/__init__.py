"""Внешние сервисы, используемые распознаванием."""
