"""Static catalog of conversion tools.

Entries are immutable at runtime and only used for submission validation and
client-facing discovery.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ToolCategory(str, Enum):
    PDF_CONVERSION = "pdf_conversion"
    IMAGE_TOOLS = "image_tools"
    PDF_MANAGEMENT = "pdf_management"


class ToolType(str, Enum):
    PDF_TO_WORD = "pdf_to_word"
    PDF_TO_EXCEL = "pdf_to_excel"
    PDF_TO_POWERPOINT = "pdf_to_powerpoint"
    WORD_TO_PDF = "word_to_pdf"
    EXCEL_TO_PDF = "excel_to_pdf"
    POWERPOINT_TO_PDF = "powerpoint_to_pdf"
    HTML_TO_PDF = "html_to_pdf"

    IMAGES_TO_PDF = "images_to_pdf"
    PDF_TO_IMAGES = "pdf_to_images"
    COMPRESS_IMAGE = "compress_image"
    CONVERT_IMAGE_FORMAT = "convert_image_format"
    CROP_IMAGE = "crop_image"
    RESIZE_IMAGE = "resize_image"
    ROTATE_IMAGE = "rotate_image"
    UPSCALE_IMAGE = "upscale_image"
    REMOVE_BACKGROUND = "remove_background"

    MERGE_PDFS = "merge_pdfs"
    SPLIT_PDF = "split_pdf"
    COMPRESS_PDF = "compress_pdf"
    ROTATE_PDF = "rotate_pdf"


# Output format markers that are resolved per job
SAME_FORMAT = "same"
VARIOUS_FORMAT = "various"
DEFAULT_IMAGE_FORMAT = "png"

_IMAGES = ("jpg", "jpeg", "png", "gif", "bmp")


@dataclass(frozen=True)
class ToolConfig:
    id: int
    name: str
    type: ToolType
    category: ToolCategory
    description: str
    input_formats: tuple[str, ...]
    output_format: str
    max_file_size: int  # MB
    processing_time_estimate: int  # seconds

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size * 1024 * 1024

    def accepts(self, extension: str) -> bool:
        return extension.lower().lstrip(".") in self.input_formats

    def output_extension(self, input_extension: str, options: Optional[dict] = None) -> str:
        """Resolve the output file extension (without dot) for one job."""
        if self.output_format == SAME_FORMAT:
            return input_extension.lower().lstrip(".")
        if self.output_format == VARIOUS_FORMAT:
            target = (options or {}).get("format") or DEFAULT_IMAGE_FORMAT
            return str(target).lower().lstrip(".")
        return self.output_format


TOOLS: tuple[ToolConfig, ...] = (
    ToolConfig(1, "PDF to Word", ToolType.PDF_TO_WORD, ToolCategory.PDF_CONVERSION,
               "Convert PDF documents to editable Word format", ("pdf",), "docx", 50, 30),
    ToolConfig(2, "PDF to Excel", ToolType.PDF_TO_EXCEL, ToolCategory.PDF_CONVERSION,
               "Convert PDF documents to Excel spreadsheets", ("pdf",), "xlsx", 50, 45),
    ToolConfig(3, "PDF to PowerPoint", ToolType.PDF_TO_POWERPOINT, ToolCategory.PDF_CONVERSION,
               "Convert PDF documents to PowerPoint presentations", ("pdf",), "pptx", 50, 60),
    ToolConfig(4, "Word to PDF", ToolType.WORD_TO_PDF, ToolCategory.PDF_CONVERSION,
               "Convert Word documents to PDF format", ("doc", "docx"), "pdf", 100, 20),
    ToolConfig(5, "Excel to PDF", ToolType.EXCEL_TO_PDF, ToolCategory.PDF_CONVERSION,
               "Convert Excel spreadsheets to PDF format", ("xls", "xlsx"), "pdf", 100, 25),
    ToolConfig(6, "PowerPoint to PDF", ToolType.POWERPOINT_TO_PDF, ToolCategory.PDF_CONVERSION,
               "Convert PowerPoint presentations to PDF format", ("ppt", "pptx"), "pdf", 200, 30),
    ToolConfig(7, "HTML to PDF", ToolType.HTML_TO_PDF, ToolCategory.PDF_CONVERSION,
               "Convert HTML pages to PDF documents", ("html", "htm"), "pdf", 10, 15),
    ToolConfig(8, "Images to PDF", ToolType.IMAGES_TO_PDF, ToolCategory.IMAGE_TOOLS,
               "Combine multiple images into a single PDF document", _IMAGES + ("tiff",), "pdf", 100, 20),
    ToolConfig(9, "PDF to Images", ToolType.PDF_TO_IMAGES, ToolCategory.IMAGE_TOOLS,
               "Extract images from PDF documents", ("pdf",), "zip", 100, 40),
    ToolConfig(10, "Compress Image", ToolType.COMPRESS_IMAGE, ToolCategory.IMAGE_TOOLS,
               "Reduce image file size while maintaining quality", _IMAGES, SAME_FORMAT, 50, 10),
    ToolConfig(11, "Convert Image Format", ToolType.CONVERT_IMAGE_FORMAT, ToolCategory.IMAGE_TOOLS,
               "Convert images between different formats", _IMAGES + ("tiff", "webp"), VARIOUS_FORMAT, 50, 15),
    ToolConfig(12, "Crop Image", ToolType.CROP_IMAGE, ToolCategory.IMAGE_TOOLS,
               "Crop images to specific dimensions or ratios", _IMAGES, SAME_FORMAT, 50, 5),
    ToolConfig(13, "Resize Image", ToolType.RESIZE_IMAGE, ToolCategory.IMAGE_TOOLS,
               "Resize images to specific dimensions", _IMAGES, SAME_FORMAT, 50, 8),
    ToolConfig(14, "Rotate Image", ToolType.ROTATE_IMAGE, ToolCategory.IMAGE_TOOLS,
               "Rotate images by specified angles", _IMAGES, SAME_FORMAT, 50, 5),
    ToolConfig(15, "Upscale Image", ToolType.UPSCALE_IMAGE, ToolCategory.IMAGE_TOOLS,
               "Enhance image resolution using AI upscaling", ("jpg", "jpeg", "png"), SAME_FORMAT, 25, 120),
    ToolConfig(16, "Remove Background", ToolType.REMOVE_BACKGROUND, ToolCategory.IMAGE_TOOLS,
               "Remove background from images automatically", ("jpg", "jpeg", "png"), "png", 25, 30),
    ToolConfig(17, "Merge PDFs", ToolType.MERGE_PDFS, ToolCategory.PDF_MANAGEMENT,
               "Combine multiple PDF files into one document", ("pdf",), "pdf", 200, 25),
    ToolConfig(18, "Split PDF", ToolType.SPLIT_PDF, ToolCategory.PDF_MANAGEMENT,
               "Split PDF documents into separate pages or ranges", ("pdf",), "zip", 100, 20),
    ToolConfig(19, "Compress PDF", ToolType.COMPRESS_PDF, ToolCategory.PDF_MANAGEMENT,
               "Reduce PDF file size while maintaining quality", ("pdf",), "pdf", 200, 35),
    ToolConfig(20, "Rotate PDF", ToolType.ROTATE_PDF, ToolCategory.PDF_MANAGEMENT,
               "Rotate PDF pages by specified angles", ("pdf",), "pdf", 100, 15),
)

_BY_TYPE = {tool.type.value: tool for tool in TOOLS}


def all_tools() -> list[ToolConfig]:
    return list(TOOLS)


def get_tool(tool_type: str) -> Optional[ToolConfig]:
    """Look up a tool by its type string, or None if unknown."""
    return _BY_TYPE.get(tool_type)


def tools_in_category(category: ToolCategory) -> list[ToolConfig]:
    return [tool for tool in TOOLS if tool.category == category]
