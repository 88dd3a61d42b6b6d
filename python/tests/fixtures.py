"""Stable demo page used by tests and the dev seed script.

Note:
- The demo page has no creator_email unless a test sets one
- No fixture data in migrations
"""

DEMO_PAGE_ID = "abc123"

DEMO_PAGE = {
    "id": DEMO_PAGE_ID,
    "question": "Will you be my Valentine?",
    "begging_messages": ["Please? 🥺", "Pretty please? 💕", "I'll be so sad..."],
    "final_message": "You just made me the happiest person ever! 💖",
    "social_label": "Message me on Instagram",
    "social_link": "https://instagram.com/demo",
    "sender_name": "Alex",
    "theme": "pink",
}

DEMO_CREATOR_EMAIL = "creator@example.com"
