"""Static demo catalog."""

from .models import Product, SizeCode


AVAILABLE_SIZES = [code.value for code in SizeCode]

PRODUCTS: tuple[Product, ...] = (
    Product(
        id="seamless-sage",
        name="Seamless Set Sage",
        description=(
            "Two-piece seamless set in sage green: cropped sports top and "
            "full-length high-waist leggings with ribbed seam details and a "
            "soft matte sheen."
        ),
        image_url="https://images.unsplash.com/photo-1518310383802-640c2de311b2",
        fit_hint="tight and athletic",
    ),
    Product(
        id="sculpt-black",
        name="Sculpt Set Black",
        description=(
            "Two-piece set in deep black: long-sleeve compression top and "
            "leggings with contour seams and a subtle satin sheen."
        ),
        image_url="https://images.unsplash.com/photo-1506629082955-511b1aa562c8",
        fit_hint="tight and athletic",
    ),
    Product(
        id="flow-lavender",
        name="Flow Set Lavender",
        description=(
            "Two-piece set in pastel lavender: scoop-neck bra top and flared "
            "leggings in a brushed, buttery-soft fabric."
        ),
        image_url="https://images.unsplash.com/photo-1583454110551-21f2fa2afe61",
        fit_hint="tight and athletic",
    ),
)

_BY_ID = {product.id: product for product in PRODUCTS}


def get_product(product_id: str) -> Product | None:
    return _BY_ID.get(product_id)
