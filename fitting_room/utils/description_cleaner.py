"""Utility to clean product descriptions before they go into the try-on prompt."""

import re


# Shop noise that says nothing about how the product looks
NOISE_PHRASES = [
    # Marketing
    r'\bnew arrival\b',
    r'\bbest ?seller\b',
    r'\blimited edition\b',
    r'\bfree shipping\b',
    r'\bfree returns\b',
    r'\bmust.have\b',
    # UI elements
    r'\bread more\b',
    r'\bshow more\b',
    r'\badd to (?:cart|bag)\b',
    r'\bsize guide\b',
    # Article numbers
    r'\bart\.?\s*no\.?:?\s*\d+',
    r'\bsku:?\s*\w+',
    r'\bproduct\s*code:?\s*\w+',
]

# Words that mark a product as more than one garment
MULTI_PIECE_PATTERNS = [
    r'\btwo.piece\b',
    r'\b2.piece\b',
    r'\bthree.piece\b',
    r'\bco.ord\b',
    r'\bset\b',
    r'\b(?:top|bra|shirt|jacket)\b.*\b(?:and|&|with)\b.*\b(?:leggings|pants|shorts|skirt|trousers)\b',
]

MAX_LENGTH = 400


def clean_description(raw_description: str | None) -> str:
    """Strip shop noise and normalize spacing, keeping the original wording.

    Returns:
        Cleaned text, at most ``MAX_LENGTH`` characters, '' for empty input
    """
    if not raw_description:
        return ''

    text = raw_description
    for pattern in NOISE_PHRASES:
        text = re.sub(pattern, '', text, flags=re.IGNORECASE)

    # Normalize separators
    text = text.replace('|', '. ').replace('•', '. ')

    # Fix punctuation
    text = re.sub(r'\s*,\s*', ', ', text)
    text = re.sub(r'(?<!\d)\s*\.\s*(?!\d)', '. ', text)  # keep decimals such as 1.5
    text = re.sub(r'\.(?:\s*\.)+', '.', text)
    text = re.sub(r'\s+', ' ', text).strip(' ,.')

    # Drop repeated sentences (common in scraped data)
    seen = set()
    sentences = []
    for sentence in (s.strip() for s in text.split('. ')):
        key = sentence.lower()[:30]
        if sentence and key not in seen:
            seen.add(key)
            sentences.append(sentence)

    text = '. '.join(sentences)
    if text and not text.endswith('.'):
        text += '.'

    if len(text) > MAX_LENGTH:
        text = text[:MAX_LENGTH].rsplit(' ', 1)[0].rstrip(' ,.') + '.'
    return text


def is_multi_piece(description: str | None) -> bool:
    """True when the description names an outfit of several garments."""
    if not description:
        return False
    text = description.lower()
    return any(re.search(pattern, text) for pattern in MULTI_PIECE_PATTERNS)
