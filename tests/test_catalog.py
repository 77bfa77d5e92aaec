# tests/test_catalog.py
from convert_server.catalog import ToolCategory, all_tools, get_tool, tools_in_category
from convert_server.plans import PLAN_LIMITS, Plan, limits_for


def test_catalog_has_every_tool_once():
    tools = all_tools()
    assert len(tools) == 20
    assert len({tool.type for tool in tools}) == 20
    assert len({tool.id for tool in tools}) == 20


def test_pdf_to_word_entry():
    tool = get_tool("pdf_to_word")
    assert tool.input_formats == ("pdf",)
    assert tool.output_format == "docx"
    assert tool.max_file_size == 50
    assert tool.max_file_size_bytes == 50 * 1024 * 1024


def test_unknown_tool_is_none():
    assert get_tool("pdf_to_mp3") is None


def test_categories_partition_catalog():
    total = sum(len(tools_in_category(category)) for category in ToolCategory)
    assert total == len(all_tools())
    assert all(tool.category == ToolCategory.PDF_MANAGEMENT for tool in tools_in_category(ToolCategory.PDF_MANAGEMENT))


def test_accepts_is_case_insensitive():
    tool = get_tool("word_to_pdf")
    assert tool.accepts("DOCX")
    assert tool.accepts(".doc")
    assert not tool.accepts("pdf")


def test_output_extension_resolution():
    assert get_tool("compress_image").output_extension("JPG") == "jpg"
    assert get_tool("convert_image_format").output_extension("png", {"format": "WEBP"}) == "webp"
    assert get_tool("convert_image_format").output_extension("png") == "png"
    assert get_tool("pdf_to_excel").output_extension("pdf") == "xlsx"


def test_plan_table():
    assert PLAN_LIMITS[Plan.FREE].daily == 10
    assert PLAN_LIMITS[Plan.FREE].monthly == 100
    assert PLAN_LIMITS[Plan.PRO].price_formatted == "$29.00"
    assert limits_for("platinum") == PLAN_LIMITS[Plan.FREE]
    assert limits_for("enterprise").monthly == 1_000_000
