"""Report labels - provides t("key", locale) for translated strings.

Every key in _TRANSLATIONS carries both "en" and "uk" values. Unknown
locales fall back to English.
"""
from datetime import date, datetime
from typing import Dict, Union

DEFAULT_LOCALE = "en"

_DATE_FORMATS: Dict[str, str] = {
    "en": "%m/%d/%Y",
    "uk": "%d.%m.%Y",
}

_TIME_FORMATS: Dict[str, str] = {
    "en": "%I:%M:%S %p",
    "uk": "%H:%M:%S",
}

# Sunday first
_WEEKDAYS: Dict[str, list[str]] = {
    "en": ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"],
    "uk": ["Неділя", "Понеділок", "Вівторок", "Середа", "Четвер", "П'ятниця", "Субота"],
}

_TRANSLATIONS: Dict[str, Dict[str, str]] = {
    # Task status
    "TODO": {"en": "To do", "uk": "До виконання"},
    "IN_PROGRESS": {"en": "In progress", "uk": "В процесі"},
    "COMPLETED": {"en": "Completed", "uk": "Завершено"},
    "CANCELLED": {"en": "Cancelled", "uk": "Скасовано"},

    # Task priority
    "LOW": {"en": "Low", "uk": "Низький"},
    "MEDIUM": {"en": "Medium", "uk": "Середній"},
    "HIGH": {"en": "High", "uk": "Високий"},
    "URGENT": {"en": "Urgent", "uk": "Терміновий"},

    # Common values
    "no_project": {"en": "No project", "uk": "Без проекту"},
    "not_set": {"en": "Not set", "uk": "Не встановлено"},
    "active": {"en": "Active", "uk": "Активно"},

    # Task report
    "tasks_report": {"en": "Tasks report", "uk": "Звіт по завданнях"},
    "col_title": {"en": "Task title", "uk": "Назва завдання"},
    "col_status": {"en": "Status", "uk": "Статус"},
    "col_priority": {"en": "Priority", "uk": "Пріоритет"},
    "col_project": {"en": "Project", "uk": "Проект"},
    "col_created": {"en": "Created", "uk": "Дата створення"},
    "col_due": {"en": "Due date", "uk": "Термін виконання"},
    "col_total_minutes": {"en": "Total time (min)", "uk": "Загальний час (хв)"},
    "col_entries": {"en": "Time entries", "uk": "Кількість записів часу"},
    "col_description": {"en": "Description", "uk": "Опис"},

    # Time series report
    "time_series_report": {"en": "Tracked time", "uk": "Витрачений час"},
    "col_period": {"en": "Period", "uk": "Період"},
    "col_tasks": {"en": "Tasks", "uk": "Завдання"},

    # Time entry report
    "time_report": {"en": "Time spent report", "uk": "Звіт витраченого часу"},
    "col_date": {"en": "Date", "uk": "Дата"},
    "col_start": {"en": "Start", "uk": "Початок"},
    "col_end": {"en": "End", "uk": "Кінець"},
    "col_minutes": {"en": "Minutes", "uk": "Хвилини"},
    "col_task": {"en": "Task", "uk": "Завдання"},
    "period": {"en": "Period", "uk": "Період"},
    "total_minutes": {"en": "Total time (min)", "uk": "Загальний час (хв)"},
    "entries_count": {"en": "Entries", "uk": "Кількість записів"},
    "avg_minutes": {"en": "Average per entry (min)", "uk": "Середній час на запис (хв)"},
}


def _locale(locale: str) -> str:
    return locale if locale in _DATE_FORMATS else DEFAULT_LOCALE


def t(key: str, locale: str = DEFAULT_LOCALE) -> str:
    """Translate a key, returning the key itself when unknown."""
    values = _TRANSLATIONS.get(key)
    if values is None:
        return key
    return values.get(_locale(locale), values[DEFAULT_LOCALE])


def weekday_labels(locale: str = DEFAULT_LOCALE) -> list[str]:
    """Weekday names, Sunday first."""
    return _WEEKDAYS[_locale(locale)]


def format_date(value: Union[date, datetime], locale: str = DEFAULT_LOCALE) -> str:
    """
    Localized short date.

    Examples:
        >>> format_date(date(2024, 3, 9), "uk")
        '09.03.2024'
        >>> format_date(date(2024, 3, 9))
        '03/09/2024'
    """
    return value.strftime(_DATE_FORMATS[_locale(locale)])


def format_time(value: datetime, locale: str = DEFAULT_LOCALE) -> str:
    """Localized time of day."""
    return value.strftime(_TIME_FORMATS[_locale(locale)])
