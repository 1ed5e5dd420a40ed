"""Reply construction for chat messages and quick-reply sets."""

from typing import Optional, Sequence

from sales_assistant.config import settings
from sales_assistant.schemas.catalog_schema import CatalogModel, CatalogVariant
from sales_assistant.schemas.faq_schema import FAQEntry
from sales_assistant.schemas.message_schema import QuickReply
from sales_assistant.schemas.quote_schema import QuoteCalculation
from sales_assistant.utils import format_currency

_brand = settings.business.name

# Quick-reply titles are capped at 20 characters by the messaging platform.
_QUICK_REPLY_TITLE_MAX = 20

GREETING_TEXT = (
    f"Hi there! Welcome to {_brand}. I'm your virtual sales assistant and I can "
    "help you find the right car.\n\nWhat would you like to do today?"
)

GREETING_QUICK_REPLIES = [
    QuickReply(title="Browse Models", payload="SHOW_MODELS"),
    QuickReply(title="Get a Quote", payload="GET_QUOTE"),
    QuickReply(title="View Photos", payload="VIEW_PHOTOS"),
    QuickReply(title="Ask Questions", payload="ASK_QUESTIONS"),
]

HELP_TEXT = (
    f"I'm here to help you find the perfect {_brand} vehicle!\n\n"
    "Here's what I can do:\n"
    '• Browse cars: "show me models"\n'
    '• See photos: "photos of Xpander"\n'
    '• Get specs: "specs of Xpander GLS"\n'
    '• Get a quote: "how much is the Montero Sport?"\n'
    '• Ask questions: "what is the warranty?"\n\n'
    "What are you looking for today?"
)

PHOTO_PROMPT_TEXT = (
    "I'd love to show you photos! Which model are you interested in?\n\n"
    'You can say:\n• "Show me Xpander"\n• "Photos of Montero Sport"\n'
    '• Or type "models" to see all available cars'
)

SPECS_PROMPT_TEXT = (
    "I can share detailed specifications. Which variant would you like to know about?\n\n"
    'Try:\n• "What are the specs of Xpander GLS?"\n• "Montero Sport Black Series features"'
)

ASK_QUESTIONS_TEXT = (
    "Ask me anything! For example:\n\n"
    "• Warranty coverage\n• Financing options\n• After-sales service\n"
    "• Features and specifications\n\nWhat would you like to know?"
)

EMPTY_CATALOG_TEXT = "Our catalog is being updated right now. Please check back shortly."

SAFETY_DENIED_TEXT = (
    f"I can only assist with {_brand} vehicles, pricing, and related services. "
    'Please ask about our cars or type "help" for available options.'
)

TRY_AGAIN_TEXT = "Sorry, something went wrong on our side. Please try again in a moment."

PRICING_VARIANT_REQUIRED_TEXT = (
    'Please tell me which variant you want pricing for (e.g., "Xpander GLS A/T"), '
    'or type "quote" to get a detailed quotation.'
)

SPECS_VARIANT_REQUIRED_TEXT = (
    'Please tell me which variant you want specs for (e.g., "specs Xpander GLS A/T").'
)

# -- Quote dialogue --------------------------------------------------------- #

QUOTE_START_TEXT = (
    "Let's get you a price quote!\n\nWhich model or variant are you interested in?\n\n"
    'Examples:\n• "Xpander GLS A/T"\n• "Montero Sport Black Series"'
)

QUOTE_CANCELLED_TEXT = 'Quote cancelled. Type "quote" anytime to start again!'

PAYMENT_QUICK_REPLIES = [
    QuickReply(title="Cash Purchase", payload="PAYMENT_CASH"),
    QuickReply(title="Financing", payload="PAYMENT_FINANCING"),
]

DOWN_PAYMENT_QUICK_REPLIES = [
    QuickReply(title="20% (Minimum)", payload="DOWN_PAYMENT_20"),
    QuickReply(title="30%", payload="DOWN_PAYMENT_30"),
    QuickReply(title="50%", payload="DOWN_PAYMENT_50"),
]


def build_term_quick_replies(terms: Sequence[int]) -> list[QuickReply]:
    replies = []
    for months in terms:
        years = months // 12
        label = f"{months} months ({years} year{'s' if years != 1 else ''})"
        replies.append(QuickReply(title=label[:_QUICK_REPLY_TITLE_MAX], payload=f"TERM_{months}"))
    return replies


def build_variant_found_text(variant: CatalogVariant, lead: str = "Great") -> str:
    return (
        f"{lead}! I found the *{variant.display_name}*.\n\n"
        f"SRP: {format_currency(variant.price)}\n\nHow would you like to purchase?"
    )


def build_variant_retry_text(query: str) -> str:
    return (
        f'I couldn\'t find "{query}".\n\nPlease try:\n'
        "• Typing the model and variant name\n"
        '• Typing "models" to see all available cars\n'
        '• Or typing "cancel" to stop'
    )


def build_down_payment_text(percent: int) -> str:
    return f"Down payment: {percent}%\n\nNow choose your financing term:"


def build_term_retry_text(terms: Sequence[int]) -> str:
    return "Please choose a valid term: " + ", ".join(f"{t} months" for t in terms) + "."


# -- Catalog replies -------------------------------------------------------- #


def build_model_list(models: Sequence[CatalogModel]) -> str:
    lines = [f"• {m.name} ({m.segment or 'Sedan'})" for m in models]
    return (
        f"Here's our complete {_brand} lineup:\n\n"
        + "\n".join(lines)
        + "\n\nWhich one catches your eye? Tell me the name and I'll show you the "
        "details, photos, and pricing."
    )


def build_model_overview(model: CatalogModel) -> str:
    lines = [f"*{model.name}*"]
    if model.description:
        lines.append(model.description)
    lines.append("\n*Variants:*")
    for variant in model.variants:
        lines.append(f"• {variant.name} - {format_currency(variant.price)}")
    lines.append('\nReply with "photos [model]" or "specs [variant]" for more details!')
    return "\n".join(lines)


def build_variant_summary(variant: CatalogVariant) -> str:
    return (
        f"*{variant.display_name}*\n"
        f"*Price:* {format_currency(variant.price)}\n"
        f"*Transmission:* {variant.transmission or 'N/A'}\n"
        f"*Fuel:* {variant.fuel or 'N/A'}\n\n"
        'Reply with "photos", "specs", or "quote" for more details!'
    )


def build_specs_text(variant: CatalogVariant) -> str:
    """Every spec attribute, with the ordered feature list rendered last."""
    lines = [
        f"*{variant.display_name}*\n",
        f"*Price:* {format_currency(variant.price)}",
        f"*Transmission:* {variant.transmission or 'N/A'}",
        f"*Fuel:* {variant.fuel or 'N/A'}\n",
        "*Specifications:*",
    ]
    features = variant.specs.get("features")
    for key, value in variant.specs.items():
        if key == "features" and isinstance(value, list):
            continue
        lines.append(f"• {key}: {value}")
    if isinstance(features, list) and features:
        lines.append("\n*Features:*")
        lines.extend(f"• {feature}" for feature in features)
    lines.append('\nType "photos" to see images or "quote" for pricing!')
    return "\n".join(lines)


def build_srp_summary(variant: CatalogVariant) -> str:
    return (
        f"The {variant.display_name} starts at {format_currency(variant.price)}. "
        f'For a complete quote with fees and financing options, type "quote {variant.name}".'
    )


def build_staleness_warning(days: int) -> str:
    return (
        f"This pricing data was last updated {days} days ago. "
        "Please confirm current pricing with our sales team."
    )


def build_price_mismatch_text(official: str, percent_difference: str) -> str:
    return (
        f"The official SRP is {official}. The price you mentioned differs by "
        f"{percent_difference}%. Prices may vary due to promotions or location."
    )


def build_not_found_message(query: str, suggestions: Sequence[str], context: str = "item") -> str:
    """Conversational not-found reply with up to three "did you mean" options."""
    message = f'I couldn\'t find a {context} matching "{query}". '
    if suggestions:
        numbered = "\n".join(f"{i}. {s}" for i, s in enumerate(suggestions, start=1))
        return message + f'Did you mean:\n{numbered}\n\nOr type "models" to see all available cars.'
    return message + (
        f'\n\nType "models" to see our complete lineup, or ask me anything about {_brand} vehicles!'
    )


def build_suggestion_quick_replies(names: Sequence[str]) -> list[QuickReply]:
    return [
        QuickReply(
            title=name[:_QUICK_REPLY_TITLE_MAX],
            payload="SELECT_" + name.replace(" ", "_"),
        )
        for name in names
    ]


# -- Quotes ----------------------------------------------------------------- #


def format_quote_for_chat(
    calculation: QuoteCalculation, variant_name: str, quote_id: Optional[str] = None
) -> str:
    """Render a full price breakdown. Amounts are shown in whole currency units."""
    b = calculation.breakdown
    lines = [f"*Price Quote: {variant_name}*\n", f"SRP: {format_currency(b.srp)}"]
    if b.addons > 0:
        lines.append(f"Add-ons: {format_currency(b.addons)}")

    lines.append("\n*Fees:*")
    lines.append(f"• Registration: {format_currency(b.fees.registration)}")
    lines.append(f"• Chattel: {format_currency(b.fees.chattel)}")
    lines.append(f"• Insurance: {format_currency(b.fees.insurance)}")
    for name, amount in b.fees.others.items():
        lines.append(f"• {name.replace('_', ' ').capitalize()}: {format_currency(amount)}")
    lines.append(f"Subtotal: {format_currency(b.subtotal)}")

    if b.promos.discount > 0 or b.promos.freebies:
        lines.append("\n*Promotions:*")
        if b.promos.discount > 0:
            lines.append(f"• Discount: -{format_currency(b.promos.discount)}")
        if b.promos.freebies:
            lines.append(f"• Freebies: {', '.join(b.promos.freebies)}")

    lines.append(f"\n*Cash Price: {format_currency(calculation.cash.total)}*")

    f = calculation.financing
    if f is not None:
        lines.extend([
            f"\n*Financing ({f.down_payment_percent}% DP):*",
            f"• Down Payment: {format_currency(f.down_payment)}",
            f"• Amount Financed: {format_currency(f.amount_financed)}",
            f"• Monthly for {f.months} months: {format_currency(f.monthly_amortization)}",
            f"• Interest Rate: {f.interest_rate}% p.a.",
            f"• Total Payable: {format_currency(f.total_payable)}",
        ])

    if quote_id:
        lines.append(f"\nQuote ID: {quote_id[:8]}\n(Reference this when talking to our sales team)")
    return "\n".join(lines)


# -- Knowledge base --------------------------------------------------------- #


def build_faq_context(entries: Sequence[FAQEntry]) -> str:
    return "\n\n".join(
        f"Q{i}: {entry.question}\nA{i}: {entry.answer}"
        for i, entry in enumerate(entries, start=1)
    )


def build_faq_fallback_answer(entries: Sequence[FAQEntry]) -> str:
    """Top entry's answer plus up to two related questions."""
    answer = entries[0].answer
    related = entries[1:3]
    if not related:
        return answer
    listed = "\n".join(f"{i}. {e.question}" for i, e in enumerate(related, start=1))
    return f"{answer}\n\n*Related questions you can ask:*\n{listed}"
