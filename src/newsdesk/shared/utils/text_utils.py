#!/usr/bin/env python3
"""Text processing utilities shared by the deduplicator, generation and audio stages."""

import hashlib
import html
import re
import unicodedata
from typing import FrozenSet, Iterable, List

from bs4 import BeautifulSoup

STOP_WORDS: FrozenSet[str] = frozenset([
    # English
    'the', 'is', 'at', 'which', 'on', 'a', 'an', 'and', 'or', 'of', 'for', 'in', 'to',
    'be', 'was', 'were', 'been', 'being', 'have', 'has', 'had', 'do', 'does', 'did',
    # Hindi
    'का', 'की', 'के', 'में', 'है', 'हैं', 'को', 'से', 'पर', 'ने', 'एक', 'यह', 'वह',
    'और', 'इस', 'उस', 'तो', 'जो', 'कि', 'हो', 'था', 'थी', 'थे', 'कर', 'करने', 'किया',
])

# Devanagari vowel signs are not \w in Python, so the block is kept explicitly (minus the dandas)
_PUNCTUATION = re.compile(r'[^\w\s\u0900-\u097F]|[\u0964\u0965]')
_URL = re.compile(r'https?://\S+|www\.\S+', re.IGNORECASE)
_EMOJI = re.compile(
    '['
    '\U0001F300-\U0001FAFF'
    '\U00002600-\U000027BF'
    '\U0001F000-\U0001F02F'
    '\U0001F0A0-\U0001F0FF'
    '\U0001F100-\U0001F1FF'
    '\U0000FE0F'
    '\U0000200D'
    ']+'
)
_MARKDOWN_SYMBOLS = re.compile(r'[*_#`>~|]+')
_WHITESPACE = re.compile(r'\s+')
_SENTENCE_END = re.compile(r'(?<=[.!?।])\s+')


class TextUtils:
    """Text processing utilities."""

    @staticmethod
    def clean_html(content: str, max_length: int = 0) -> str:
        """Strip tags, decode entities, collapse whitespace; truncate on a word boundary if max_length."""
        if not content:
            return ''
        cleaned = BeautifulSoup(str(content), 'html.parser').get_text(' ')
        cleaned = html.unescape(cleaned)
        cleaned = _WHITESPACE.sub(' ', cleaned).strip()

        if max_length and len(cleaned) > max_length:
            truncated = cleaned[:max_length].rsplit(' ', 1)[0]
            return truncated if truncated else cleaned[:max_length]
        return cleaned

    @staticmethod
    def tokenize(text: str, stop_words: Iterable[str] = STOP_WORDS) -> FrozenSet[str]:
        """NFC-normalise, lowercase, drop punctuation (keeping Devanagari), stop-words and tokens of length <= 2."""
        if not text:
            return frozenset()
        stops = stop_words if isinstance(stop_words, (set, frozenset)) else set(stop_words)
        lowered = _PUNCTUATION.sub('', unicodedata.normalize('NFC', text).lower())
        return frozenset(w for w in lowered.split() if len(w) > 2 and w not in stops)

    @staticmethod
    def fingerprint_key(words: Iterable[str]) -> str:
        """Order-independent key for a token set."""
        return ' '.join(sorted(words))

    @staticmethod
    def normalize_headline(headline: str) -> str:
        return TextUtils.fingerprint_key(TextUtils.tokenize(headline))

    @staticmethod
    def normalize_url(url: str) -> str:
        if not url:
            return ''
        return url.strip().lower().split('#')[0].rstrip('/')

    @staticmethod
    def stable_id(value: str, length: int = 20) -> str:
        """Deterministic hex id for natural keys (URLs, fingerprint keys)."""
        return hashlib.sha256(value.encode('utf-8')).hexdigest()[:length]

    @staticmethod
    def sanitize_for_speech(text: str, max_chars: int) -> str:
        """Reduce article markup to plain narratable text capped at max_chars."""
        if not text:
            return ''
        cleaned = TextUtils.clean_html(text)
        cleaned = _URL.sub(' ', cleaned)
        cleaned = _EMOJI.sub(' ', cleaned)
        cleaned = _MARKDOWN_SYMBOLS.sub(' ', cleaned)
        cleaned = _WHITESPACE.sub(' ', cleaned).strip()
        if len(cleaned) > max_chars:
            cleaned = cleaned[:max_chars]
        return cleaned

    @staticmethod
    def chunk_text(text: str, max_chars: int) -> List[str]:
        """Split text into ordered chunks of at most max_chars, preferring sentence then word boundaries."""
        if not text:
            return []
        if max_chars <= 0 or len(text) <= max_chars:
            return [text]

        chunks: List[str] = []
        current = ''
        for sentence in _SENTENCE_END.split(text):
            pieces = [sentence] if len(sentence) <= max_chars else TextUtils._split_words(sentence, max_chars)
            for piece in pieces:
                candidate = f"{current} {piece}" if current else piece
                if len(candidate) <= max_chars:
                    current = candidate
                else:
                    chunks.append(current)
                    current = piece
        if current:
            chunks.append(current)
        return chunks

    @staticmethod
    def _split_words(text: str, max_chars: int) -> List[str]:
        pieces: List[str] = []
        current = ''
        for word in text.split(' '):
            while len(word) > max_chars:
                if current:
                    pieces.append(current)
                    current = ''
                pieces.append(word[:max_chars])
                word = word[max_chars:]
            if not word:
                continue
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= max_chars:
                current = candidate
            else:
                pieces.append(current)
                current = word
        if current:
            pieces.append(current)
        return pieces

    @staticmethod
    def markdown_to_html(content: str) -> str:
        """Convert the markdown remnants models leave in article bodies to HTML tags."""
        if not content:
            return ''
        converted = re.sub(r'^### (.*)$', r'<h3>\1</h3>', content, flags=re.MULTILINE)
        converted = re.sub(r'\*\*(.*?)\*\*', r'<strong>\1</strong>', converted)
        converted = re.sub(r'^\* (.*)$', r'<li>\1</li>', converted, flags=re.MULTILINE)
        return converted
