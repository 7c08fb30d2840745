"""
Signature lists shared by the metadata scorer and the AI forensics detector.
All entries are lowercase; callers lowercase the tag before matching.
"""

# Desktop image editors: a photo that passed through one of these was edited.
EDITING_SOFTWARE_SIGNATURES = (
    "photoshop",
    "gimp",
    "paint.net",
    "affinity",
    "pixlr",
)

# Image generators that stamp their name into the software tag.
AI_SOFTWARE_SIGNATURES = (
    "midjourney",
    "stable diffusion",
    "stablediffusion",
    "dall-e",
    "dalle",
    "automatic1111",
    "comfyui",
    "novelai",
    "firefly",
    "ideogram",
)

# Output sizes emitted by common generators (both sides must match).
CANONICAL_GENERATOR_SIZES = (512, 768, 1024, 1536, 2048)
