#!/usr/bin/env python3
"""Category-keyed stock images used when no generated image is available."""

from typing import Dict, List, Optional, Union

from ...shared.types.results import ArticleCategory

STOCK_IMAGES: Dict[str, List[str]] = {
    'sarkari_yojana': [
        "https://i.ibb.co/4wYxc5FV/image.png",
        "https://i.ibb.co/tP3dLg4g/image.png",
        "https://i.ibb.co/DP5Hy6QG/image.png",
        "https://i.ibb.co/MyT2mXz1/image.png",
        "https://i.ibb.co/ymzZTB2W/image.png",
    ],
    'bharti_result': [
        "https://i.ibb.co/0Ry90pGt/image.png",
        "https://i.ibb.co/gbJwRXk3/image.png",
        "https://i.ibb.co/s9gVj2Db/image.png",
        "https://i.ibb.co/vCykWHdd/image.png",
    ],
    'mandi_bhav': [
        "https://i.ibb.co/v64vMRwm/image.png",
    ],
    'shiksha_vibhag': [
        "https://i.ibb.co/GQ5rMqS7/image.png",
    ],
    'nagaur_news': [
        "https://i.ibb.co/Ndcmzbzc/image.png",
    ],
    'default': [
        "https://i.ibb.co/Ndcmzbzc/image.png",
    ],
}

_CATEGORY_KEYS: Dict[ArticleCategory, str] = {
    ArticleCategory.GOVT_SCHEME: 'sarkari_yojana',
    ArticleCategory.JOBS_RESULTS: 'bharti_result',
    ArticleCategory.MANDI_RATES: 'mandi_bhav',
    ArticleCategory.EDUCATION: 'shiksha_vibhag',
    ArticleCategory.LOCAL_NEWS: 'nagaur_news',
}


def category_key(category: Optional[Union[ArticleCategory, str]]) -> str:
    """Internal stock key for a category enum or a free-form (Hindi or English) label."""
    if category is None:
        return 'default'
    if isinstance(category, ArticleCategory):
        return _CATEGORY_KEYS[category]

    label = str(category).lower().strip()
    for member, key in _CATEGORY_KEYS.items():
        if member.value in label:
            return key
    if 'yojana' in label or 'scheme' in label:
        return 'sarkari_yojana'
    if 'नौकरियां' in label or 'job' in label or 'bharti' in label:
        return 'bharti_result'
    if 'mandi' in label or 'bhav' in label:
        return 'mandi_bhav'
    if 'shiksha' in label or 'education' in label:
        return 'shiksha_vibhag'
    if 'nagaur' in label or 'rajasthan' in label or 'राजस्थान' in label:
        return 'nagaur_news'
    return 'default'


def stock_image_for(category: Optional[Union[ArticleCategory, str]]) -> str:
    """Deterministic fallback: always the first image of the category's list."""
    images = STOCK_IMAGES.get(category_key(category)) or STOCK_IMAGES['default']
    return images[0]
