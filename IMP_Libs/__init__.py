"""
IMP_Libs - IMP Image Editor Core Modules

This package contains the computational core of the IMP layered image
editor, organized into specialized sub-packages:

- CanvasLib: Pixel buffers, layers, undo history and the compositor
- FiltersLib: Convolution, tone, dithering and distortion filters
- MosaicLib: Block mosaic, recursive mosaic and halftone synthesis
- PhotomosaicLib: Tile corpus preprocessing and nearest-colour tile matching
- RenderLib: Autostereogram and ASCII/HTML renderers
- OperationsLib: Editor facade, named-operation registry and pipeline files
"""

__version__ = "0.1.0"
