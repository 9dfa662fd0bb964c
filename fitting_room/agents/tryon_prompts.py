"""Instruction text sent to Gemini for size estimation and try-on rendering."""

from ..models import Product, SizeCode
from ..utils.description_cleaner import clean_description, is_multi_piece


SIZE_CODES_TEXT = ", ".join(code.value for code in SizeCode)

SIZE_PROMPT = (
    'Analyse the person. Suggest a size ({sizes}) for "{product_name}". '
    "Output only the size code."
)

TRYON_PROMPT = """MANDATORY TASK: Professional Virtual Try-On for a Fashion Store.
USER: Image 1. PRODUCT: Image 2.
PRODUCT: {product_name}.
PRODUCT DESCRIPTION: {description}

CRITICAL INSTRUCTIONS:
{instructions}"""

MULTI_PIECE_INSTRUCTIONS = [
    "This is a MULTI-PIECE SET. You MUST dress the person in EVERY piece shown in Image 2.",
    "Do NOT omit any piece (for example pants or leggings). Ensure the full outfit is visible.",
]

BASE_INSTRUCTIONS = [
    "STICK EXACTLY to the color, fabric sheen, and distinctive seam patterns of the product.",
    "Maintain the person's identity (face, hair) and the background of Image 1 perfectly.",
]


def build_size_prompt(product_name: str) -> str:
    """Instruction for the text model: classify the build into one size code."""
    return SIZE_PROMPT.format(sizes=SIZE_CODES_TEXT, product_name=product_name)


def build_tryon_prompt(product: Product) -> str:
    """Structured instruction set for the image model.

    Image 1 is always the user photo and Image 2 the product, matching the
    order of the image parts in the request.
    """
    instructions = []
    if is_multi_piece(f"{product.name}. {product.description}"):
        instructions.extend(MULTI_PIECE_INSTRUCTIONS)
    else:
        instructions.append("Dress the person in the product shown in Image 2.")
    instructions.extend(BASE_INSTRUCTIONS)

    closing = "Output ONLY the image."
    if product.fit_hint:
        closing = f"The fit should be {product.fit_hint}. {closing}"
    instructions.append(closing)

    numbered = "\n".join(f"{i}. {line}" for i, line in enumerate(instructions, start=1))
    return TRYON_PROMPT.format(
        product_name=product.name,
        description=clean_description(product.description) or product.name,
        instructions=numbered,
    )
