#!/usr/bin/env python3
"""
Category reconciliation.

Two independent classifiers pick a category from the fixed set:
  - provider layer: the category string the model returned, normalized through
    a keyword map (unmapped strings are dropped)
  - keyword layer: a first-match keyword scan over headline and body
The provider layer wins when it produced a value; disagreement is only logged.
"""

import logging
from typing import List, Optional, Tuple

from ...shared.types.results import ArticleCategory, CategoryDecision

logger = logging.getLogger(__name__)

# Order matters: the first category with a matching keyword wins
PROVIDER_CATEGORY_KEYWORDS: List[Tuple[ArticleCategory, Tuple[str, ...]]] = [
    (ArticleCategory.JOBS_RESULTS, ('भर्ती', 'रिजल्ट', 'नौकरी', 'recruitment', 'result', 'exam', 'vacancy', 'job', 'bharti')),
    (ArticleCategory.EDUCATION, ('शिक्षा', 'विभाग', 'education', 'teacher', 'salary', 'transfer', 'shiksha')),
    (ArticleCategory.MANDI_RATES, ('मंडी', 'भाव', 'mandi', 'bhav', 'crop price', 'market rate')),
    (ArticleCategory.GOVT_SCHEME, ('योजना', 'yojana', 'scheme')),
    (ArticleCategory.LOCAL_NEWS, ('नागौर', 'nagaur', 'local', 'rajasthan', 'राजस्थान')),
]

CONTENT_CATEGORY_KEYWORDS: List[Tuple[ArticleCategory, Tuple[str, ...]]] = [
    (ArticleCategory.JOBS_RESULTS, (
        'bharti', 'भर्ती', 'recruitment', 'नियुक्ति',
        'exam', 'pariksha', 'परीक्षा',
        'result', 'parinam', 'परिणाम', 'रिजल्ट',
        'admit card', 'प्रवेश पत्र', 'एडमिट कार्ड',
        'answer key', 'उत्तर कुंजी', 'आंसर की',
        'vacancy', 'रिक्ति', 'वैकेंसी',
        'counselling', 'काउंसलिंग',
        'reet', 'रीट', 'rpsc', 'rsmssb',
    )),
    (ArticleCategory.MANDI_RATES, (
        'mandi', 'मंडी', 'भाव', 'quintal', 'क्विंटल', 'जीरा', 'मूंग', 'ग्वार', 'सरसों', 'आवक',
    )),
    (ArticleCategory.EDUCATION, (
        'शिक्षा विभाग', 'शिक्षक', 'स्कूल', 'विद्यालय', 'शाला', 'school', 'teacher',
        'education', 'transfer', 'तबादला', 'स्थानांतरण', 'डीईओ',
    )),
    (ArticleCategory.GOVT_SCHEME, (
        'योजना', 'yojana', 'scheme', 'सब्सिडी', 'subsidy', 'अनुदान', 'पेंशन', 'pension', 'लाभार्थी',
    )),
]

DEFAULT_CATEGORY = ArticleCategory.LOCAL_NEWS


class CategoryReconciler:
    """Reconciles the provider-reported category with a keyword scan of the text."""

    def normalize_provider_category(self, raw: Optional[str]) -> Optional[ArticleCategory]:
        """Map a free-form provider category onto the fixed set, or None."""
        if not raw or not raw.strip():
            return None
        text = raw.strip()
        for category in ArticleCategory:
            if text == category.value:
                return category
        lowered = text.lower()
        for category, keywords in PROVIDER_CATEGORY_KEYWORDS:
            if any(kw in lowered for kw in keywords):
                return category
        return None

    def classify_text(self, headline: str, body: str = "") -> ArticleCategory:
        """First-match keyword scan; local news when nothing matches."""
        text = f"{headline} {body}".lower()
        for category, keywords in CONTENT_CATEGORY_KEYWORDS:
            if any(kw.lower() in text for kw in keywords):
                return category
        return DEFAULT_CATEGORY

    def reconcile(self, provider_category: Optional[str], headline: str, body: str = "") -> CategoryDecision:
        from_provider = self.normalize_provider_category(provider_category)
        from_keywords = self.classify_text(headline, body)
        decision = CategoryDecision(
            category=from_provider or from_keywords,
            provider_category=from_provider,
            keyword_category=from_keywords,
        )

        if from_provider is None:
            logger.info(f"Category (keyword fallback): {decision.category.value}"
                        + (f" | provider said '{provider_category}'" if provider_category else ""))
        elif decision.agreed:
            logger.info(f"Category verified (provider + keywords): {decision.category.value}")
        else:
            logger.info(f"Category: {decision.category.value} (provider) | keywords suggested: {from_keywords.value}")
        return decision
