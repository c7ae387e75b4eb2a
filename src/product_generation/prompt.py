"""Prompt templates for product listing, photography and assistant chat."""

from __future__ import annotations

import os

from .models import GeneratedProduct


CURRENCY = os.environ.get("VIDSTORE_CURRENCY", "INR")


def build_product_prompt(currency: str = CURRENCY) -> str:
    return f"""
You are an expert AI product manager for e-commerce. You create compelling product listings from a single image.
Based *only* on the visual information in the provided image:

1) Identify every distinct product that is clearly visible. Ignore people, hands and background clutter.
2) For each product write a catchy, descriptive title that would appeal to online shoppers.
3) Write a detailed and compelling description. Imagine what a shop owner might say about its features,
   materials and benefits. Be creative, enthusiastic and focus on selling the product.
4) Suggest a competitive market price in {currency} as a single number (e.g. 1499.0), no currency symbols.
5) If you can tell, give the main material and an approximate dimensions string (e.g. "30 x 20 x 10 cm").
6) List 3-5 short key features.
7) Give up to 3 price comparisons from typical online retailers, each with a retailer name and a price in {currency}.

Return JSON ONLY in this schema (no prose):
{{
  "products": [
    {{
      "title": "string",
      "description": "string",
      "price": 1499.0,
      "material": "string or null",
      "dimensions": "string or null",
      "features": ["string"],
      "price_comparisons": [{{"retailer": "string", "price": 1599.0}}]
    }}
  ]
}}

If no product is recognisable, return {{"products": []}}.
"""


def build_product_image_prompt(product: GeneratedProduct) -> str:
    details = [product.title]
    if product.material:
        details.append(f"made of {product.material}")
    if product.dimensions:
        details.append(f"approximately {product.dimensions}")
    return (
        "Professional e-commerce product photograph of: "
        + ", ".join(details)
        + f". {product.description[:300]}"
        " Single product, centered, studio lighting with soft shadows, clean light-gray seamless background,"
        " sharp focus, high detail, no text, no logos, no watermarks, no people."
    )


def build_edit_prompt(instruction: str) -> str:
    return (
        "Edit the provided product photo according to this instruction, keeping the product itself"
        f" recognisably the same: {instruction.strip()}"
    )


def build_assistant_prompt(location: str | None = None) -> str:
    prompt = (
        "You are a friendly, concise AI business assistant for a small online shop owner who just created"
        " a storefront from a product video. Help with product listings, pricing, photography, marketing"
        " and growing sales. Keep answers short and practical."
    )
    if location:
        prompt += (
            f" The shop owner is based in {location}; tailor suggestions (marketplaces, shipping,"
            " festivals and seasons, local pricing) to that location."
        )
    return prompt


__all__ = [
    "CURRENCY",
    "build_assistant_prompt",
    "build_edit_prompt",
    "build_product_image_prompt",
    "build_product_prompt",
]
