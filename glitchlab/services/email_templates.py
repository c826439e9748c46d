"""Localized copy and HTML layouts for transactional emails."""

import html
from datetime import datetime
from typing import Dict, Optional, Tuple

from glitchlab.utils.helpers import resolve_language

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "verification_subject": "Verify Your Email",
        "verification_title": "Email Verification",
        "verification_body": "Thank you for registering with GlitchLab. Please verify your email address by entering the following code:",
        "verification_footer": "This code will expire in 30 minutes.",
        "verification_ignore": "If you did not request this email, please ignore it.",
        "reset_subject": "Reset Your Password",
        "reset_title": "Password Reset",
        "reset_body": "We received a request to reset your password. Please enter the following verification code:",
        "reset_footer": "This code will expire in 30 minutes.",
        "reset_ignore": "If you did not request this password reset, please ignore this email.",
        "cancel_subject": "Workshop Canceled: {workshop}",
        "cancel_title": "Workshop Canceled",
        "cancel_body": "We are sorry to let you know that the workshop <strong>{workshop}</strong> scheduled for {date} has been canceled.",
        "cancel_footer": "Your registration has been removed. Take a look at our other workshops!",
        "reminder_subject": "Reminder: {workshop}",
        "reminder_title": "Workshop Reminder",
        "reminder_body": "This is a friendly reminder that the workshop <strong>{workshop}</strong> starts on {date} at {time}.",
        "reminder_footer": "We look forward to seeing you there!",
        "update_subject": "Workshop Updated: {workshop}",
        "update_title": "Workshop Details Changed",
        "update_body": "The details of the workshop <strong>{workshop}</strong> have changed.",
        "update_previous": "Previous",
        "update_new": "New",
        "update_date": "Date",
        "update_time": "Time",
        "update_location": "Location",
        "update_footer": "If the new schedule does not work for you, you can unregister from your profile.",
    },
    "it": {
        "verification_subject": "Verifica la tua email",
        "verification_title": "Verifica la tua email",
        "verification_body": "Grazie per esserti registrato su GlitchLab! Per completare la registrazione, inserisci il codice di verifica qui sotto:",
        "verification_footer": "Questo codice scadrà tra 30 minuti.",
        "verification_ignore": "Se non hai richiesto questa email, puoi ignorarla in sicurezza.",
        "reset_subject": "Reimposta la tua password",
        "reset_title": "Reimposta la password",
        "reset_body": "Abbiamo ricevuto una richiesta di reimpostazione della password. Inserisci il seguente codice di verifica:",
        "reset_footer": "Questo codice scadrà tra 30 minuti.",
        "reset_ignore": "Se non hai richiesto questa reimpostazione della password, puoi ignorare questa email.",
        "cancel_subject": "Workshop annullato: {workshop}",
        "cancel_title": "Workshop annullato",
        "cancel_body": "Ci dispiace informarti che il workshop <strong>{workshop}</strong> previsto per il {date} è stato annullato.",
        "cancel_footer": "La tua iscrizione è stata rimossa. Dai un'occhiata agli altri nostri workshop!",
        "reminder_subject": "Promemoria: {workshop}",
        "reminder_title": "Promemoria workshop",
        "reminder_body": "Ti ricordiamo che il workshop <strong>{workshop}</strong> inizia il {date} alle {time}.",
        "reminder_footer": "Non vediamo l'ora di vederti!",
        "update_subject": "Workshop aggiornato: {workshop}",
        "update_title": "Dettagli del workshop modificati",
        "update_body": "I dettagli del workshop <strong>{workshop}</strong> sono cambiati.",
        "update_previous": "Prima",
        "update_new": "Ora",
        "update_date": "Data",
        "update_time": "Orario",
        "update_location": "Luogo",
        "update_footer": "Se il nuovo programma non fa per te, puoi annullare l'iscrizione dal tuo profilo.",
    },
}

MONTHS = {
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
    "it": [
        "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
        "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
    ],
}

CARD_STYLE = (
    "font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; "
    "padding: 20px; border: 1px solid #eaeaea; border-radius: 5px;"
)
CODE_STYLE = (
    "background-color: #f9f9f9; padding: 15px; text-align: center; font-size: 24px; "
    "font-weight: bold; letter-spacing: 5px; margin: 20px 0;"
)


def format_date(value: datetime, language: str) -> str:
    language = resolve_language(language)
    month = MONTHS[language][value.month - 1]
    if language == "it":
        return f"{value.day} {month} {value.year}"
    return f"{month} {value.day}, {value.year}"


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def _card(title: str, body: str) -> str:
    return (
        f'<div style="{CARD_STYLE}">'
        f'<h2 style="color: #333; text-align: center;">{title}</h2>'
        f"{body}"
        "</div>"
    )


def _code_email(prefix: str, code: str, language: str) -> Tuple[str, str]:
    t = TRANSLATIONS[resolve_language(language)]
    body = (
        f"<p>{t[prefix + '_body']}</p>"
        f'<div style="{CODE_STYLE}">{code}</div>'
        f"<p>{t[prefix + '_footer']}</p>"
        f'<p style="margin-top: 30px; font-size: 12px; color: #777; text-align: center;">{t[prefix + "_ignore"]}</p>'
    )
    return t[prefix + "_subject"], _card(t[prefix + "_title"], body)


def verification_email(code: str, language: str) -> Tuple[str, str]:
    return _code_email("verification", code, language)


def password_reset_email(code: str, language: str) -> Tuple[str, str]:
    return _code_email("reset", code, language)


def cancellation_email(workshop_name: str, start_date: datetime, language: str) -> Tuple[str, str]:
    language = resolve_language(language)
    t = TRANSLATIONS[language]
    body = (
        f"<p>{t['cancel_body'].format(workshop=html.escape(workshop_name), date=format_date(start_date, language))}</p>"
        f"<p>{t['cancel_footer']}</p>"
    )
    return t["cancel_subject"].format(workshop=workshop_name), _card(t["cancel_title"], body)


def reminder_email(workshop_name: str, start_date: datetime, language: str) -> Tuple[str, str]:
    language = resolve_language(language)
    t = TRANSLATIONS[language]
    text = t["reminder_body"].format(
        workshop=html.escape(workshop_name),
        date=format_date(start_date, language),
        time=format_time(start_date),
    )
    body = f"<p>{text}</p><p>{t['reminder_footer']}</p>"
    return t["reminder_subject"].format(workshop=workshop_name), _card(t["reminder_title"], body)


def update_email(
    workshop_name: str,
    previous: Dict[str, Optional[object]],
    current: Dict[str, Optional[object]],
    language: str,
) -> Tuple[str, str]:
    """
    "Details changed" email comparing previous and new schedule/location.

    ``previous`` and ``current`` carry ``startDate``, ``endDate`` and
    ``location``.
    """
    language = resolve_language(language)
    t = TRANSLATIONS[language]

    def describe(snapshot):
        start, end = snapshot["startDate"], snapshot["endDate"]
        return {
            "date": format_date(start, language),
            "time": f"{format_time(start)} - {format_time(end)}",
            "location": html.escape(snapshot.get("location") or ""),
        }

    before, after = describe(previous), describe(current)
    rows = "".join(
        f"<tr><td><strong>{t['update_' + key]}</strong></td>"
        f"<td>{before[key]}</td><td>{after[key]}</td></tr>"
        for key in ("date", "time", "location")
    )
    table = (
        '<table style="width: 100%; border-collapse: collapse; margin: 20px 0;">'
        f"<tr><th></th><th>{t['update_previous']}</th><th>{t['update_new']}</th></tr>"
        f"{rows}</table>"
    )
    body = (
        f"<p>{t['update_body'].format(workshop=html.escape(workshop_name))}</p>"
        f"{table}<p>{t['update_footer']}</p>"
    )
    return t["update_subject"].format(workshop=workshop_name), _card(t["update_title"], body)
