"""Ready-made schema contracts for common extraction tasks."""

from typing import Any

EXAMPLE_SCHEMAS: dict[str, dict[str, Any]] = {
    "sentiment_analysis": {
        "name": "Sentiment Analysis",
        "description": "Analyze text sentiment and extract key emotions",
        "json_schema": {
            "type": "object",
            "properties": {
                "sentiment": {
                    "type": "string",
                    "enum": ["positive", "negative", "neutral"],
                },
                "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                "emotions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "emotion": {"type": "string"},
                            "intensity": {"type": "number", "minimum": 0, "maximum": 1},
                        },
                        "required": ["emotion", "intensity"],
                    },
                },
                "summary": {"type": "string"},
            },
            "required": ["sentiment", "confidence", "summary"],
        },
        "example_output": {
            "sentiment": "positive",
            "confidence": 0.85,
            "emotions": [
                {"emotion": "joy", "intensity": 0.8},
                {"emotion": "excitement", "intensity": 0.6},
            ],
            "summary": "The text expresses positive sentiment with high confidence.",
        },
    },
    "product_review": {
        "name": "Product Review Analysis",
        "description": "Extract structured data from product reviews",
        "json_schema": {
            "type": "object",
            "properties": {
                "rating": {"type": "integer", "minimum": 1, "maximum": 5},
                "pros": {"type": "array", "items": {"type": "string"}},
                "cons": {"type": "array", "items": {"type": "string"}},
                "categories": {
                    "type": "array",
                    "items": {
                        "type": "string",
                        "enum": [
                            "quality",
                            "price",
                            "shipping",
                            "customer_service",
                            "usability",
                            "design",
                        ],
                    },
                },
                "recommendation": {"type": "boolean"},
                "summary": {"type": "string", "maxLength": 500},
            },
            "required": ["rating", "recommendation", "summary"],
        },
    },
    "meeting_minutes": {
        "name": "Meeting Minutes",
        "description": "Structure meeting notes into actionable items",
        "json_schema": {
            "type": "object",
            "properties": {
                "meeting_title": {"type": "string"},
                "date": {"type": "string", "format": "date"},
                "attendees": {"type": "array", "items": {"type": "string"}},
                "agenda_items": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "topic": {"type": "string"},
                            "discussion_points": {
                                "type": "array",
                                "items": {"type": "string"},
                            },
                            "decisions": {"type": "array", "items": {"type": "string"}},
                        },
                        "required": ["topic"],
                    },
                },
                "action_items": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "task": {"type": "string"},
                            "assignee": {"type": "string"},
                            "due_date": {"type": "string", "format": "date"},
                            "priority": {
                                "type": "string",
                                "enum": ["low", "medium", "high"],
                            },
                        },
                        "required": ["task", "assignee"],
                    },
                },
            },
            "required": ["meeting_title", "attendees", "agenda_items"],
        },
    },
}
