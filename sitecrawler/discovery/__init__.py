from .frontier import Frontier, FrontierStats
from .link_extractor import extract_links

__all__ = ["Frontier", "FrontierStats", "extract_links"]
