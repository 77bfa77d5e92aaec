# convert_server/routes/tools.py
from fastapi import APIRouter

from convert_server.catalog import ToolCategory, all_tools, get_tool, tools_in_category
from convert_server.errors import NotFound, ValidationFailed, envelope
from convert_server.schemas import ToolView

router = APIRouter(prefix="/api/tools", tags=["tools"])


@router.get("")
def list_tools():
    """Every available tool and the categories they belong to."""
    return envelope({
        "tools": [ToolView.of(tool).dump() for tool in all_tools()],
        "categories": [category.value for category in ToolCategory],
    })


@router.get("/category/{category}")
def list_tools_in_category(category: str):
    try:
        chosen = ToolCategory(category)
    except ValueError:
        raise ValidationFailed(
            "Invalid category",
            f"Category must be one of: {', '.join(c.value for c in ToolCategory)}",
        )
    return envelope([ToolView.of(tool).dump() for tool in tools_in_category(chosen)])


@router.get("/{tool_type}")
def get_tool_details(tool_type: str):
    tool = get_tool(tool_type)
    if tool is None:
        raise NotFound("Tool not found", f'Tool "{tool_type}" does not exist')
    return envelope(ToolView.of(tool).dump())
