from pydantic import BaseModel, Field

from panel.drafts.models import Draft, DraftFile


class FileMeta(BaseModel):
    name: str
    type: str
    size: int


class ColorPreview(BaseModel):
    quantity: str
    image: FileMeta | None = None


class DraftSubmitOut(BaseModel):
    next_step: str = "preview"
    image_count: int


class DraftPreviewOut(BaseModel):
    """What the preview step renders: every field, file metadata instead of payloads."""
    title: str
    description: str
    price: str
    quantity: str
    condition: str
    delivery_option: str
    category: str
    subcategory: str
    subsubcategory: str
    brand: str
    variants: dict[str, str | list[str]] = Field(default_factory=dict)
    colors: dict[str, ColorPreview] = Field(default_factory=dict)
    images: list[FileMeta] = Field(default_factory=list)
    video: FileMeta | None = None
    edit_step: str = "compose"

    @classmethod
    def from_draft(cls, draft: Draft, *, edit_step: str = "compose") -> "DraftPreviewOut":
        def meta(f: DraftFile | None) -> FileMeta | None:
            if f is None:
                return None
            return FileMeta(name=f.name, type=f.content_type, size=f.size)

        variants = {
            "jewelry_type": draft.jewelry_type,
            "jewelry_materials": list(draft.jewelry_materials),
            "pant_sizes": list(draft.pant_sizes),
            "clothing_sizes": list(draft.clothing_sizes),
            "clothing_fit": draft.clothing_fit,
            "clothing_type": draft.clothing_type,
            "footwear_gender": draft.footwear_gender,
            "footwear_sizes": list(draft.footwear_sizes),
            "gender": draft.gender,
        }
        return cls(
            title=draft.title,
            description=draft.description,
            price=draft.price,
            quantity=draft.quantity,
            condition=draft.condition,
            delivery_option=draft.delivery_option,
            category=draft.category,
            subcategory=draft.subcategory,
            subsubcategory=draft.subsubcategory,
            brand=draft.brand,
            variants={k: v for k, v in variants.items() if v},
            colors={
                name: ColorPreview(quantity=entry.quantity, image=meta(entry.image))
                for name, entry in draft.colors.items()
            },
            images=[meta(f) for f in draft.images],
            video=meta(draft.video),
            edit_step=edit_step,
        )


class ConfirmOut(BaseModel):
    id: str
    next_step: str
    record: dict
