"""
Board representation and property management.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List

from monopoly_shared.constants import (
    CLASSIC_BOARD_SIZE, CLASSIC_SIDES, COLOR_GROUPS, CORNER_NAMES,
    GROUP_BASE_PRICE, GROUP_PRICE_STEP, HOTEL_RENT_MULTIPLIER,
    HOTEL_SCORE_VALUE, HOUSE_RENT_MULTIPLIER, HOUSE_SCORE_VALUE, MIN_BOARD_SIZE, MORTGAGE_INTEREST,
    RAILROAD_NAMES, RAILROAD_PRICE, RAILROAD_RENTS, RENT_RATIO,
    STREET_NAMES, UTILITY_MULTIPLIERS, UTILITY_NAMES, UTILITY_PRICE,
)
from monopoly_shared.enums import TileType


_TEMPLATE_CODES = {
    "P": TileType.PROPERTY,
    "CC": TileType.COMMUNITY_CHEST,
    "CH": TileType.CHANCE,
    "TAX": TileType.TAX,
    "RR": TileType.RAILROAD,
    "UT": TileType.UTILITY,
}


@dataclass
class Property:
    """
    One tile of the board.

    Every tile is a Property record; only PROPERTY, RAILROAD and UTILITY
    tiles carry a price and can be owned.
    """

    id: str
    name: str
    tile_type: TileType
    position: int
    price: int | None = None
    rent: int | None = None
    rent_with_house: int | None = None
    rent_with_hotel: int | None = None
    color_group: str | None = None

    # Ownership and development
    owner_id: str | None = None
    houses: int = 0
    has_hotel: bool = False
    is_mortgaged: bool = False

    @property
    def is_owned(self) -> bool:
        """Check if property is owned."""
        return self.owner_id is not None

    @property
    def is_purchasable(self) -> bool:
        return self.tile_type.is_purchasable and self.price is not None

    @property
    def is_street(self) -> bool:
        return self.tile_type == TileType.PROPERTY

    @property
    def development_level(self) -> int:
        """
        Get development level.
        0 = undeveloped, 1-4 = houses, 5 = hotel
        """
        if self.has_hotel:
            return 5
        return self.houses

    @property
    def mortgage_value(self) -> int:
        """Get mortgage value (half of purchase price)."""
        return (self.price or 0) // 2

    @property
    def unmortgage_cost(self) -> int:
        """Get cost to unmortgage (mortgage value plus interest)."""
        return int(self.mortgage_value * (1 + MORTGAGE_INTEREST))

    def calculate_rent(
        self,
        dice_total: int = 0,
        same_kind_owned: int = 1,
        has_monopoly: bool = False
    ) -> int:
        """
        Calculate rent owed when landing on this property.

        Args:
            dice_total: Sum of dice (for utilities)
            same_kind_owned: Number of railroads/utilities owned by the owner
            has_monopoly: Whether owner holds the full color group

        Returns:
            Rent amount owed
        """
        if self.is_mortgaged or not self.is_owned:
            return 0

        if self.tile_type == TileType.PROPERTY:
            if self.has_hotel and self.rent_with_hotel:
                return self.rent_with_hotel
            if self.houses > 0 and self.rent_with_house:
                return self.rent_with_house * self.houses
            if has_monopoly:
                return (self.rent or 0) * 2
            return self.rent or 0

        if self.tile_type == TileType.RAILROAD:
            count = max(1, min(same_kind_owned, len(RAILROAD_RENTS)))
            return RAILROAD_RENTS[count - 1]

        if self.tile_type == TileType.UTILITY:
            multiplier = UTILITY_MULTIPLIERS.get(same_kind_owned, max(UTILITY_MULTIPLIERS.values()))
            return dice_total * multiplier

        return 0

    def clear_ownership(self) -> None:
        """Return the tile to the bank with no development."""
        self.owner_id = None
        self.houses = 0
        self.has_hotel = False
        self.is_mortgaged = False

    def to_dict(self) -> dict:
        """Convert to the wire representation."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.tile_type.value,
            "position": self.position,
            "price": self.price,
            "rent": self.rent,
            "rentWithHouse": self.rent_with_house,
            "rentWithHotel": self.rent_with_hotel,
            "colorGroup": self.color_group,
            "ownerId": self.owner_id,
            "houses": self.houses,
            "hasHotel": self.has_hotel,
            "isMortgaged": self.is_mortgaged,
        }

    def to_fields(self) -> dict:
        """Mutable columns persisted after each change."""
        return {
            "owner_id": self.owner_id,
            "houses": self.houses,
            "has_hotel": self.has_hotel,
            "is_mortgaged": self.is_mortgaged,
        }


class Board:
    """
    The tiles of one room, indexed by position and by id.
    """

    def __init__(self, properties: Iterable[Property], board_size: int):
        self.board_size = board_size
        self._by_position: Dict[int, Property] = {}
        self._by_id: Dict[str, Property] = {}
        for prop in properties:
            self._by_position[prop.position] = prop
            self._by_id[prop.id] = prop

    # =========== Layout ===========

    @staticmethod
    def corner_positions(board_size: int) -> dict[TileType, int]:
        return {
            TileType.GO: 0,
            TileType.JAIL: board_size // 4,
            TileType.FREE_PARKING: board_size // 2,
            TileType.GO_TO_JAIL: board_size * 3 // 4,
        }

    @classmethod
    def generate(cls, room_id: str, board_size: int) -> "Board":
        """
        Lay out a board of the given size.

        Corners sit at the quarter points. The tiles between two corners
        follow the matching side of the classic board: a short side samples
        it evenly, a long side repeats it. A size of 40 yields the classic
        layout.
        """
        if board_size < MIN_BOARD_SIZE:
            raise ValueError(f"Board size must be at least {MIN_BOARD_SIZE}")

        corners = cls.corner_positions(board_size)
        corner_list = sorted((pos, tile_type) for tile_type, pos in corners.items())
        bounds = [pos for pos, _ in corner_list] + [board_size]

        tiles: List[Property] = []
        counters = {TileType.PROPERTY: 0, TileType.RAILROAD: 0, TileType.UTILITY: 0}
        group_index = 0
        group_open = False

        for side, (corner_pos, corner_type) in enumerate(corner_list):
            tiles.append(Property(
                id=f"{room_id}-{corner_pos}",
                name=CORNER_NAMES[corner_type.value],
                tile_type=corner_type,
                position=corner_pos,
            ))

            template = CLASSIC_SIDES[side]
            slots = bounds[side + 1] - corner_pos - 1
            for k in range(slots):
                if slots < len(template):
                    code = template[k * len(template) // slots]
                else:
                    code = template[k % len(template)]
                tile_type = _TEMPLATE_CODES[code]
                position = corner_pos + 1 + k

                if tile_type == TileType.RAILROAD and group_open:
                    group_index += 1
                    group_open = False

                tiles.append(cls._make_tile(
                    room_id, position, tile_type, group_index, counters
                ))
                if tile_type == TileType.PROPERTY:
                    group_open = True
                if tile_type in counters:
                    counters[tile_type] += 1

            if group_open:
                group_index += 1
                group_open = False

        return cls(tiles, board_size)

    @staticmethod
    def _make_tile(
        room_id: str,
        position: int,
        tile_type: TileType,
        group_index: int,
        counters: dict[TileType, int]
    ) -> Property:
        tile_id = f"{room_id}-{position}"

        if tile_type == TileType.PROPERTY:
            price = GROUP_BASE_PRICE + group_index * GROUP_PRICE_STEP
            rent = int(price * RENT_RATIO)
            group = COLOR_GROUPS[group_index % len(COLOR_GROUPS)]
            if group_index >= len(COLOR_GROUPS):
                group = f"{group}_{group_index // len(COLOR_GROUPS) + 1}"
            return Property(
                id=tile_id,
                name=_numbered(STREET_NAMES, counters[tile_type]),
                tile_type=tile_type,
                position=position,
                price=price,
                rent=rent,
                rent_with_house=rent * HOUSE_RENT_MULTIPLIER,
                rent_with_hotel=rent * HOTEL_RENT_MULTIPLIER,
                color_group=group,
            )

        if tile_type == TileType.RAILROAD:
            return Property(
                id=tile_id,
                name=_numbered(RAILROAD_NAMES, counters[tile_type]),
                tile_type=tile_type,
                position=position,
                price=RAILROAD_PRICE,
                rent=RAILROAD_RENTS[0],
                color_group=TileType.RAILROAD.value,
            )

        if tile_type == TileType.UTILITY:
            return Property(
                id=tile_id,
                name=_numbered(UTILITY_NAMES, counters[tile_type]),
                tile_type=tile_type,
                position=position,
                price=UTILITY_PRICE,
                rent=UTILITY_MULTIPLIERS[1],
                color_group=TileType.UTILITY.value,
            )

        names = {
            TileType.TAX: "Tax",
            TileType.CHANCE: "Chance",
            TileType.COMMUNITY_CHEST: "Community Chest",
        }
        return Property(
            id=tile_id,
            name=names[tile_type],
            tile_type=tile_type,
            position=position,
        )

    # =========== Lookups ===========

    @property
    def jail_position(self) -> int:
        return self.board_size // 4

    @property
    def properties(self) -> List[Property]:
        """All tiles in board order."""
        return [self._by_position[pos] for pos in sorted(self._by_position)]

    def get_tile(self, position: int) -> Property | None:
        """Get the tile at a position."""
        return self._by_position.get(position)

    def get_property(self, property_id: str) -> Property | None:
        """Get a tile by id."""
        return self._by_id.get(property_id)

    def scale_position(self, classic_position: int) -> int:
        """Map a classic-board position onto this board."""
        return classic_position * self.board_size // CLASSIC_BOARD_SIZE

    @staticmethod
    def classic_tile_type(classic_position: int) -> TileType:
        """Type of the tile at a position of the classic board."""
        for tile_type, pos in Board.corner_positions(CLASSIC_BOARD_SIZE).items():
            if pos == classic_position:
                return tile_type
        side, offset = divmod(classic_position, CLASSIC_BOARD_SIZE // 4)
        return _TEMPLATE_CODES[CLASSIC_SIDES[side][offset - 1]]

    def card_destination(self, classic_position: int) -> int:
        """
        Where a card naming a classic-board tile sends a player.

        The scaled position when it holds a tile of the same type, otherwise
        the closest tile of that type, ahead on a tie.
        """
        target = self.scale_position(classic_position)
        wanted = self.classic_tile_type(classic_position)
        candidates = [
            prop.position for prop in self._by_position.values()
            if prop.tile_type == wanted
        ]
        if not candidates or target in candidates:
            return target

        size = self.board_size
        return min(candidates, key=lambda pos: (
            min((pos - target) % size, (target - pos) % size),
            (pos - target) % size,
        ))

    def nearest(self, position: int, tile_type: TileType) -> int | None:
        """
        First tile of a type strictly ahead of a position, wrapping around.
        """
        positions = sorted(
            prop.position for prop in self._by_position.values()
            if prop.tile_type == tile_type
        )
        if not positions:
            return None
        for candidate in positions:
            if candidate > position:
                return candidate
        return positions[0]

    def get_player_properties(self, player_id: str) -> List[Property]:
        """Get all properties owned by a player."""
        return [prop for prop in self.properties if prop.owner_id == player_id]

    def get_group_properties(self, group: str) -> List[Property]:
        """Get all tiles in a color group."""
        return [prop for prop in self.properties if prop.color_group == group]

    def player_has_monopoly(self, player_id: str, group: str | None) -> bool:
        """Check if player owns every street in a color group."""
        if not group or group in (TileType.RAILROAD.value, TileType.UTILITY.value):
            return False

        group_properties = self.get_group_properties(group)
        if not group_properties:
            return False

        return all(prop.owner_id == player_id for prop in group_properties)

    def count_owned_of_type(self, player_id: str, tile_type: TileType) -> int:
        """Count railroads or utilities held by one owner."""
        return sum(
            1 for prop in self.properties
            if prop.tile_type == tile_type and prop.owner_id == player_id
        )

    def calculate_rent(self, prop: Property, dice_total: int = 0) -> int:
        """Rent owed to the owner of a tile by anyone else landing on it."""
        if not prop.is_owned:
            return 0

        return prop.calculate_rent(
            dice_total=dice_total,
            same_kind_owned=self.count_owned_of_type(prop.owner_id, prop.tile_type),
            has_monopoly=self.player_has_monopoly(prop.owner_id, prop.color_group),
        )

    def property_value(self, player_id: str) -> int:
        """Final valuation of a player's holdings."""
        return sum(
            (prop.price or 0)
            + prop.houses * HOUSE_SCORE_VALUE
            + (HOTEL_SCORE_VALUE if prop.has_hotel else 0)
            for prop in self.get_player_properties(player_id)
        )

    def to_list(self) -> list[dict]:
        return [prop.to_dict() for prop in self.properties]


def _numbered(names: list[str], index: int) -> str:
    """Pick a name from a list, numbering repeats on large boards."""
    base = names[index % len(names)]
    if index < len(names):
        return base
    return f"{base} {index // len(names) + 1}"
