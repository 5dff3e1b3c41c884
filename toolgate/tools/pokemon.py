"""Pokémon lookup tool backed by the public PokeAPI."""

from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from toolgate.tools.base import ToolContext, ToolDescriptor
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


class SearchPokemonInput(BaseModel):
    """Input schema for Pokémon search."""

    name_or_id: str = Field(
        ...,
        alias="nameOrId",
        min_length=1,
        description="The name or ID of the Pokémon to search for, e.g. 'ditto' or '25'.",
    )

    class Config:
        populate_by_name = True


def format_pokemon(data: dict[str, Any]) -> str:
    """Summarize a PokeAPI payload."""
    types = ", ".join(t["type"]["name"] for t in data.get("types") or []) or "N/A"
    abilities = ", ".join(a["ability"]["name"] for a in data.get("abilities") or []) or "N/A"

    result = (
        f"Pokémon: {data.get('name')} (ID: {data.get('id')})\n"
        f"Height: {data.get('height')}\n"
        f"Weight: {data.get('weight')}\n"
        f"Types: {types}\n"
        f"Abilities: {abilities}"
    )

    sprite = (data.get("sprites") or {}).get("front_default")
    if sprite:
        result += f"\nSprite: {sprite}"
    return result


async def search_pokemon(args: SearchPokemonInput, context: ToolContext) -> str:
    url = f"{context.services.settings.pokemon_api_url}/{quote(args.name_or_id, safe='')}"
    logger.info(f"Searching Pokémon: name_or_id={args.name_or_id}")

    try:
        response = await context.services.http.get(url)
        if response.status_code != 200:
            return f"No Pokémon found for '{args.name_or_id}'. (Status: {response.status_code})"
        return format_pokemon(response.json())
    except httpx.HTTPError as e:
        logger.error(f"PokeAPI request failed: {e}")
        return f"Error fetching Pokémon details: {e}"


def create_search_pokemon_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="searchPokemon",
        description=(
            "Search for Pokémon details by name or ID using the public PokeAPI. Returns summary info "
            "including name, id, height, weight, types, abilities, and a sprite image."
        ),
        input_schema=SearchPokemonInput,
        execute=search_pokemon,
    )
