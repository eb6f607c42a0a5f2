from __future__ import annotations

import random

SPEECH_TOPICS = (
    "Describe your morning routine and why it works for you",
    "Talk about your favorite meal and how to prepare it",
    "Share a memorable travel experience",
    "Explain a hobby you're passionate about",
    "Describe your ideal weekend",
    "Talk about a book or movie that changed your perspective",
    "Share advice for someone starting a new job",
    "Describe the city or town where you grew up",
    "Talk about a skill you'd like to learn and why",
    "Share your thoughts on work-life balance",
    "Describe a person who has influenced your life",
    "Talk about the importance of daily exercise",
    "Share your favorite way to relax after a busy day",
    "Describe a challenge you overcame",
    "Talk about the benefits of learning a new language",
    "Share your thoughts on social media",
    "Describe your dream vacation destination",
    "Talk about your favorite season and why",
    "Share a childhood memory that shaped who you are",
    "Describe what friendship means to you",
    "Talk about the importance of reading",
    "Share your thoughts on healthy eating habits",
    "Describe a goal you're working toward",
    "Talk about a tradition your family celebrates",
    "Share advice for managing stress",
    "Describe your favorite outdoor activity",
    "Talk about the importance of saving money",
    "Share your thoughts on remote work",
    "Describe a lesson you learned the hard way",
    "Talk about what motivates you each day",
)


def random_topic(exclude: str | None = None, rng: random.Random | None = None) -> str:
    """Pick a practice topic, avoiding ``exclude`` so repeated calls change the prompt."""
    rng = rng or random
    choices = [t for t in SPEECH_TOPICS if t != exclude] or list(SPEECH_TOPICS)
    return rng.choice(choices)
