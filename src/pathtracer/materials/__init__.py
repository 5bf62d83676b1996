"""Materials module for surface scattering and textures.

Implemented Materials:
    DiffuseMaterial: Cosine-weighted diffuse reflection
    MetalMaterial: Specular reflection with roughness-based fuzz
    TransparentMaterial: Refraction with Schlick-weighted reflection
    EmissiveMaterial: Light-emitting surface ending the path

Textures:
    Texture: RGBA float texture with wrap/clamp addressing and point/bilinear filtering
    CubeMap: Six-face environment texture sampled by direction
"""

from .base import Material, MaterialType, ScatterResult
from .diffuse import DiffuseMaterial, scatter_diffuse
from .emissive import EmissiveMaterial, scatter_emissive
from .metal import MetalMaterial, scatter_metal
from .texture import AddressMode, CubeFace, CubeMap, Texture, TextureFilter, cube_face_uv
from .transparent import (
    IOR_AIR,
    IOR_DIAMOND,
    IOR_GLASS,
    IOR_WATER,
    TransparentMaterial,
    scatter_transparent,
    will_reflect,
)

__all__ = [
    # Base
    "Material",
    "MaterialType",
    "ScatterResult",
    # Variants
    "DiffuseMaterial",
    "scatter_diffuse",
    "MetalMaterial",
    "scatter_metal",
    "TransparentMaterial",
    "scatter_transparent",
    "will_reflect",
    "IOR_AIR",
    "IOR_WATER",
    "IOR_GLASS",
    "IOR_DIAMOND",
    "EmissiveMaterial",
    "scatter_emissive",
    # Textures
    "Texture",
    "AddressMode",
    "TextureFilter",
    "CubeMap",
    "CubeFace",
    "cube_face_uv",
]
