from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class ActionKeywords:
    action_id: str
    keywords: tuple[str, ...]


@dataclass(frozen=True)
class ActionParamSpec:
    action_id: str
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()
    synonyms: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def all_fields(self) -> tuple[str, ...]:
        return self.required + self.optional


APP_NAME_MAP: Mapping[str, str] = MappingProxyType(
    {
        "github": "GITHUB",
        "gmail": "GMAIL",
        "youtube": "YOUTUBE",
        "googledocs": "GOOGLEDOCS",
        "googlecalendar": "GOOGLECALENDAR",
    }
)


def _keywords(*entries: tuple[str, tuple[str, ...]]) -> tuple[ActionKeywords, ...]:
    return tuple(ActionKeywords(action_id=action_id, keywords=keywords) for action_id, keywords in entries)


ACTION_KEYWORDS: Mapping[str, tuple[ActionKeywords, ...]] = MappingProxyType(
    {
        "github": _keywords(
            ("GITHUB_STAR_A_REPOSITORY_FOR_THE_AUTHENTICATED_USER", ("star", "favourite", "bookmark repository")),
            ("GITHUB_UNSTAR_REPO_FOR_AUTHENTICATED_USER", ("unstar", "remove star", "unfavourite")),
            ("GITHUB_FORK_A_REPOSITORY", ("fork", "copy repository")),
            ("GITHUB_CREATE_AN_ISSUE", ("create issue", "open issue", "new issue", "report bug")),
            (
                "GITHUB_CREATE_A_REPOSITORY_FOR_THE_AUTHENTICATED_USER",
                ("create repo", "new repo", "create repository", "new repository"),
            ),
            ("GITHUB_LIST_REPOSITORIES_FOR_THE_AUTHENTICATED_USER", ("list repo", "show repo", "my repositories")),
        ),
        "gmail": _keywords(
            (
                "GMAIL_SEND_EMAIL",
                ("send email", "send mail", "email to", "mail to", "compose and send", "write email", "send an email"),
            ),
            ("GMAIL_CREATE_EMAIL_DRAFT", ("create draft", "draft email", "save draft", "prepare email")),
            ("GMAIL_LIST_ALL_EMAILS", ("list email", "show email", "get email", "check inbox", "my emails")),
            ("GMAIL_ADD_LABEL_TO_EMAIL", ("add label", "label email", "tag email", "categorize email")),
        ),
        "youtube": _keywords(
            ("YOUTUBE_SEARCH_YOUTUBE", ("search", "find video", "look for", "search youtube")),
            ("YOUTUBE_SUBSCRIBE_TO_CHANNEL", ("subscribe", "follow channel")),
            ("YOUTUBE_UNSUBSCRIBE_FROM_CHANNEL", ("unsubscribe", "unfollow channel")),
            ("YOUTUBE_LIKE_VIDEO", ("like video", "thumbs up")),
        ),
        "googledocs": _keywords(
            ("GOOGLEDOCS_CREATE_DOCUMENT", ("create doc", "new doc", "create document", "new document", "write doc")),
            ("GOOGLEDOCS_UPDATE_DOCUMENT", ("update doc", "edit doc", "modify doc", "change doc")),
            ("GOOGLEDOCS_GET_DOCUMENT", ("get doc", "read doc", "show doc", "open doc")),
        ),
        "googlecalendar": _keywords(
            ("GOOGLECALENDAR_CREATE_EVENT", ("create event", "schedule", "new event", "add event", "book")),
            ("GOOGLECALENDAR_LIST_EVENTS", ("list event", "show event", "my events", "calendar")),
            ("GOOGLECALENDAR_UPDATE_EVENT", ("update event", "change event", "modify event", "reschedule")),
        ),
    }
)


_EMAIL_SYNONYMS = {
    "to": "recipient_email",
    "email": "recipient_email",
    "recipient": "recipient_email",
    "message": "body",
    "content": "body",
    "text": "body",
    "message_body": "body",
}


def _spec(
    action_id: str,
    required: tuple[str, ...],
    optional: tuple[str, ...] = (),
    synonyms: dict[str, str] | None = None,
) -> tuple[str, ActionParamSpec]:
    return action_id, ActionParamSpec(
        action_id=action_id,
        required=required,
        optional=optional,
        synonyms=MappingProxyType(dict(synonyms or {})),
    )


ACTION_PARAMS: Mapping[str, ActionParamSpec] = MappingProxyType(
    dict(
        [
            _spec(
                "GMAIL_SEND_EMAIL",
                ("recipient_email", "subject", "body"),
                ("cc", "bcc", "attachment", "is_html", "thread_id", "extra_recipients", "user_id"),
                _EMAIL_SYNONYMS,
            ),
            _spec(
                "GMAIL_CREATE_EMAIL_DRAFT",
                ("recipient_email",),
                ("subject", "body", "cc", "bcc", "attachment", "is_html", "thread_id", "extra_recipients", "user_id"),
                _EMAIL_SYNONYMS,
            ),
            _spec(
                "GMAIL_REPLY_TO_THREAD",
                ("thread_id", "message_body", "recipient_email"),
                ("attachment", "user_id"),
                {
                    "to": "recipient_email",
                    "email": "recipient_email",
                    "recipient": "recipient_email",
                    "message": "message_body",
                    "body": "message_body",
                    "content": "message_body",
                    "text": "message_body",
                },
            ),
            _spec(
                "GITHUB_STAR_A_REPOSITORY_FOR_THE_AUTHENTICATED_USER",
                ("owner", "repo"),
                (),
                {"repository": "repo", "repository_name": "repo", "repo_name": "repo"},
            ),
            _spec(
                "GITHUB_CREATE_AN_ISSUE",
                ("owner", "repo", "title"),
                ("body", "assignees", "labels", "milestone"),
                {"repository": "repo", "issue_title": "title", "description": "body", "content": "body"},
            ),
            _spec(
                "GOOGLEDOCS_CREATE_DOCUMENT",
                ("title",),
                ("text",),
                {"name": "title", "document_name": "title", "body": "text", "content": "text", "message": "text"},
            ),
            _spec(
                "GOOGLEDOCS_UPDATE_DOCUMENT",
                ("document_id",),
                ("text", "title"),
                {"doc_id": "document_id", "id": "document_id", "body": "text", "content": "text"},
            ),
            _spec(
                "GOOGLECALENDAR_CREATE_EVENT",
                ("summary", "start_datetime", "end_datetime"),
                ("description", "location", "attendees", "timezone"),
                {
                    "title": "summary",
                    "event_title": "summary",
                    "start": "start_datetime",
                    "end": "end_datetime",
                    "body": "description",
                    "content": "description",
                },
            ),
            _spec(
                "YOUTUBE_SEARCH_YOUTUBE",
                ("query",),
                ("max_results", "order"),
                {"search_query": "query", "search": "query", "q": "query"},
            ),
            _spec(
                "YOUTUBE_SUBSCRIBE_TO_CHANNEL",
                ("channel_id",),
                (),
                {"channel": "channel_id", "id": "channel_id"},
            ),
        ]
    )
)


# Appended verbatim to the extraction prompt for actions the model tends to get wrong.
EXTRACTION_HINTS: Mapping[str, str] = MappingProxyType(
    {
        "GMAIL_SEND_EMAIL": (
            "CRITICAL: Gmail requires EXACT parameter names:\n"
            '- "recipient_email" (NOT "to", NOT "email")\n'
            '- "subject" (the email subject line)\n'
            '- "body" (NOT "message", NOT "content")\n'
            "\n"
            "Example:\n"
            "User: \"Send email to john@test.com about tomorrow's meeting\"\n"
            "YOU MUST OUTPUT:\n"
            "{\n"
            '  "understood": true,\n'
            '  "clarifying_question": null,\n'
            '  "parameters": {\n'
            '    "recipient_email": "john@test.com",\n'
            '    "subject": "Tomorrow\'s Meeting",\n'
            '    "body": "Hello, I wanted to reach out about our meeting tomorrow."\n'
            "  }\n"
            "}"
        ),
        "GMAIL_CREATE_EMAIL_DRAFT": (
            "CRITICAL: Use these exact field names:\n"
            '- "recipient_email" (required)\n'
            '- "subject" (optional)\n'
            '- "body" (optional)'
        ),
        "GMAIL_REPLY_TO_THREAD": (
            'The reply text goes in "message_body" (NOT "body"). '
            '"thread_id" must come from the user\'s message; ask for it if absent.'
        ),
        "GITHUB_STAR_A_REPOSITORY_FOR_THE_AUTHENTICATED_USER": (
            'Parse repository in format "owner/repo":\n'
            '- "facebook/react" -> owner: "facebook", repo: "react"\n'
            '- "sentient-agi/ROMA" -> owner: "sentient-agi", repo: "ROMA"'
        ),
        "GITHUB_CREATE_AN_ISSUE": (
            'Parse repository in format "owner/repo". The issue headline goes in "title", details in "body".'
        ),
        "GOOGLEDOCS_CREATE_DOCUMENT": (
            "Use exact field names:\n"
            '- "title" (the document name)\n'
            '- "text" (the document content, NOT "body")'
        ),
        "GOOGLECALENDAR_CREATE_EVENT": (
            'Event name goes in "summary". "start_datetime" and "end_datetime" use ISO 8601 '
            "(YYYY-MM-DDTHH:MM:SS). Ask for the time if the user gave none."
        ),
    }
)


def normalize_app(app: str) -> str:
    return (app or "").strip().lower()


def connector_app_name(app: str) -> str:
    normalized = normalize_app(app)
    return APP_NAME_MAP.get(normalized, normalized.upper())


def list_action_keywords(app: str) -> tuple[ActionKeywords, ...]:
    return ACTION_KEYWORDS.get(normalize_app(app), ())


def get_param_spec(action_id: str) -> ActionParamSpec | None:
    return ACTION_PARAMS.get((action_id or "").strip().upper())


def get_extraction_hint(action_id: str) -> str:
    return EXTRACTION_HINTS.get((action_id or "").strip().upper(), "")


def application_for_action(action_id: str) -> str:
    return (action_id or "").strip().split("_", 1)[0].upper()


def list_supported_apps() -> list[dict[str, object]]:
    return [
        {
            "id": app,
            "name": APP_NAME_MAP.get(app, app.upper()),
            "actions": [entry.action_id for entry in entries],
        }
        for app, entries in ACTION_KEYWORDS.items()
    ]
