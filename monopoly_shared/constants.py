"""
Game constants for the match server.
All monetary values are in Monopoly dollars.
"""

# Board
DEFAULT_BOARD_SIZE = 40
MIN_BOARD_SIZE = 12
SUPPORTED_BOARD_SIZES = (40, 60, 80, 100)
STARTING_CASH = 1500
GO_BONUS = 200
TAX_AMOUNT = 100

# Jail
MAX_JAIL_TURNS = 3
JAIL_BAIL = 50

# Houses and Hotels
MAX_HOUSES_PER_PROPERTY = 4
HOUSE_COST = 50
HOTEL_COST = 100
MORTGAGE_INTEREST = 0.1

# Scoring (final asset valuation)
HOUSE_SCORE_VALUE = 50
HOTEL_SCORE_VALUE = 100

# Players
MIN_PLAYERS = 2
MAX_PLAYERS = 8

# Auctions and trades
AUCTION_DURATION_SECONDS = 30
AUCTION_STARTING_BID_RATIO = 0.5
AUCTION_DEFAULT_PRICE = 100
RESOLVED_RETENTION_SECONDS = 60

# Railroads and Utilities
RAILROAD_PRICE = 200
RAILROAD_RENTS = [25, 50, 100, 200]
UTILITY_PRICE = 150
UTILITY_MULTIPLIERS = {
    1: 4,
    2: 10,
}

# Color groups, in board order. Groups past the eighth reuse these
# names with a numeric suffix on larger boards.
COLOR_GROUPS = [
    "BROWN",
    "LIGHT_BLUE",
    "PINK",
    "ORANGE",
    "RED",
    "YELLOW",
    "GREEN",
    "DARK_BLUE",
]

# Street pricing: group k costs GROUP_BASE_PRICE + k * GROUP_PRICE_STEP
GROUP_BASE_PRICE = 60
GROUP_PRICE_STEP = 40
RENT_RATIO = 0.1
HOUSE_RENT_MULTIPLIER = 5
HOTEL_RENT_MULTIPLIER = 10

# Classic board sides (the nine tiles between two corners).
# "P" = street, "CC" = community chest, "CH" = chance, "TAX" = tax,
# "RR" = railroad, "UT" = utility.
CLASSIC_SIDES = [
    ["P", "CC", "P", "TAX", "RR", "P", "CH", "P", "P"],
    ["P", "UT", "P", "P", "RR", "P", "CC", "P", "P"],
    ["P", "CH", "P", "P", "RR", "P", "P", "UT", "P"],
    ["P", "P", "CC", "P", "RR", "CH", "P", "TAX", "P"],
]

STREET_NAMES = [
    "Mediterranean Avenue", "Baltic Avenue",
    "Oriental Avenue", "Vermont Avenue", "Connecticut Avenue",
    "St. Charles Place", "States Avenue", "Virginia Avenue",
    "St. James Place", "Tennessee Avenue", "New York Avenue",
    "Kentucky Avenue", "Indiana Avenue", "Illinois Avenue",
    "Atlantic Avenue", "Ventnor Avenue", "Marvin Gardens",
    "Pacific Avenue", "North Carolina Avenue", "Pennsylvania Avenue",
    "Park Place", "Boardwalk",
]

RAILROAD_NAMES = [
    "Reading Railroad",
    "Pennsylvania Railroad",
    "B&O Railroad",
    "Short Line",
]

UTILITY_NAMES = [
    "Electric Company",
    "Water Works",
]

CORNER_NAMES = {
    "GO": "GO",
    "JAIL": "Jail",
    "FREE_PARKING": "Free Parking",
    "GO_TO_JAIL": "Go To Jail",
}

# Card positions are defined on the classic board and scaled to other sizes
CLASSIC_BOARD_SIZE = 40
