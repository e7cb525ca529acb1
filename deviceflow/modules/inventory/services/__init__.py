"""Сервисы модуля учёта устройств.

Пакет не реэкспортирует хранилища: models.py импортирует thread_manager,
и обратный импорт моделей отсюда дал бы цикл.
"""
