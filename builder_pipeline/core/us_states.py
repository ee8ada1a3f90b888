"""Curated US state, city and centroid tables used by extraction and geocoding."""

from typing import Dict, List, Optional, Tuple

Coordinates = Tuple[float, float]

STATE_NAMES: Dict[str, str] = {
    "AL": "Alabama",
    "AK": "Alaska",
    "AZ": "Arizona",
    "AR": "Arkansas",
    "CA": "California",
    "CO": "Colorado",
    "CT": "Connecticut",
    "DE": "Delaware",
    "FL": "Florida",
    "GA": "Georgia",
    "HI": "Hawaii",
    "ID": "Idaho",
    "IL": "Illinois",
    "IN": "Indiana",
    "IA": "Iowa",
    "KS": "Kansas",
    "KY": "Kentucky",
    "LA": "Louisiana",
    "ME": "Maine",
    "MD": "Maryland",
    "MA": "Massachusetts",
    "MI": "Michigan",
    "MN": "Minnesota",
    "MS": "Mississippi",
    "MO": "Missouri",
    "MT": "Montana",
    "NE": "Nebraska",
    "NV": "Nevada",
    "NH": "New Hampshire",
    "NJ": "New Jersey",
    "NM": "New Mexico",
    "NY": "New York",
    "NC": "North Carolina",
    "ND": "North Dakota",
    "OH": "Ohio",
    "OK": "Oklahoma",
    "OR": "Oregon",
    "PA": "Pennsylvania",
    "RI": "Rhode Island",
    "SC": "South Carolina",
    "SD": "South Dakota",
    "TN": "Tennessee",
    "TX": "Texas",
    "UT": "Utah",
    "VT": "Vermont",
    "VA": "Virginia",
    "WA": "Washington",
    "WV": "West Virginia",
    "WI": "Wisconsin",
    "WY": "Wyoming",
}

_NAME_TO_ABBR = {name.lower(): abbr for abbr, name in STATE_NAMES.items()}

# One representative city per state, used when the builder's own city is unknown.
STATE_DEFAULT_CITY: Dict[str, Tuple[str, Coordinates]] = {
    "AL": ("Birmingham", (33.5186, -86.8104)),
    "AK": ("Anchorage", (61.2181, -149.9003)),
    "AZ": ("Phoenix", (33.4484, -112.0740)),
    "AR": ("Little Rock", (34.7465, -92.2896)),
    "CA": ("Los Angeles", (34.0522, -118.2437)),
    "CO": ("Denver", (39.7392, -104.9903)),
    "CT": ("Hartford", (41.7658, -72.6734)),
    "DE": ("Wilmington", (39.7391, -75.5398)),
    "FL": ("Orlando", (28.5383, -81.3792)),
    "GA": ("Atlanta", (33.7490, -84.3880)),
    "HI": ("Honolulu", (21.3069, -157.8583)),
    "ID": ("Boise", (43.6150, -116.2023)),
    "IL": ("Chicago", (41.8781, -87.6298)),
    "IN": ("Indianapolis", (39.7684, -86.1581)),
    "IA": ("Des Moines", (41.5868, -93.6250)),
    "KS": ("Wichita", (37.6872, -97.3301)),
    "KY": ("Louisville", (38.2527, -85.7585)),
    "LA": ("New Orleans", (29.9511, -90.0715)),
    "ME": ("Portland", (43.6591, -70.2568)),
    "MD": ("Baltimore", (39.2904, -76.6122)),
    "MA": ("Boston", (42.3601, -71.0589)),
    "MI": ("Detroit", (42.3314, -83.0458)),
    "MN": ("Minneapolis", (44.9778, -93.2650)),
    "MS": ("Jackson", (32.2988, -90.1848)),
    "MO": ("Kansas City", (39.0997, -94.5786)),
    "MT": ("Bozeman", (45.6770, -111.0429)),
    "NE": ("Omaha", (41.2565, -95.9345)),
    "NV": ("Las Vegas", (36.1699, -115.1398)),
    "NH": ("Manchester", (42.9956, -71.4548)),
    "NJ": ("Newark", (40.7357, -74.1724)),
    "NM": ("Albuquerque", (35.0844, -106.6504)),
    "NY": ("New York", (40.7128, -74.0060)),
    "NC": ("Charlotte", (35.2271, -80.8431)),
    "ND": ("Fargo", (46.8772, -96.7898)),
    "OH": ("Columbus", (39.9612, -82.9988)),
    "OK": ("Oklahoma City", (35.4676, -97.5164)),
    "OR": ("Portland", (45.5152, -122.6784)),
    "PA": ("Philadelphia", (39.9526, -75.1652)),
    "RI": ("Providence", (41.8240, -71.4128)),
    "SC": ("Charleston", (32.7765, -79.9311)),
    "SD": ("Sioux Falls", (43.5446, -96.7311)),
    "TN": ("Nashville", (36.1627, -86.7816)),
    "TX": ("Austin", (30.2672, -97.7431)),
    "UT": ("Salt Lake City", (40.7608, -111.8910)),
    "VT": ("Burlington", (44.4759, -73.2121)),
    "VA": ("Richmond", (37.5407, -77.4360)),
    "WA": ("Seattle", (47.6062, -122.3321)),
    "WV": ("Charleston", (38.3498, -81.6326)),
    "WI": ("Milwaukee", (43.0389, -87.9065)),
    "WY": ("Cheyenne", (41.1400, -104.8202)),
}

CITY_CENTROIDS: Dict[str, Dict[str, Coordinates]] = {
    "AL": {
        "Birmingham": (33.5186, -86.8104),
        "Huntsville": (34.7304, -86.5861),
        "Mobile": (30.6954, -88.0399),
        "Montgomery": (32.3668, -86.3000),
        "Tuscaloosa": (33.2098, -87.5692),
    },
    "AK": {
        "Anchorage": (61.2181, -149.9003),
        "Fairbanks": (64.8378, -147.7164),
        "Juneau": (58.3019, -134.4197),
        "Wasilla": (61.5814, -149.4394),
    },
    "AR": {
        "Little Rock": (34.7465, -92.2896),
        "Fayetteville": (36.0626, -94.1574),
        "Bentonville": (36.3729, -94.2088),
        "Fort Smith": (35.3859, -94.3985),
    },
    "AZ": {
        "Phoenix": (33.4484, -112.0740),
        "Tucson": (32.2226, -110.9747),
        "Mesa": (33.4152, -111.8315),
        "Chandler": (33.3062, -111.8413),
        "Scottsdale": (33.4942, -111.9261),
        "Glendale": (33.5387, -112.1860),
        "Gilbert": (33.3528, -111.7890),
        "Tempe": (33.4255, -111.9400),
        "Peoria": (33.5806, -112.2374),
        "Flagstaff": (35.1983, -111.6513),
        "Prescott": (34.5400, -112.4685),
        "Sedona": (34.8697, -111.7610),
    },
    "CA": {
        "Los Angeles": (34.0522, -118.2437),
        "San Diego": (32.7157, -117.1611),
        "San Jose": (37.3382, -121.8863),
        "San Francisco": (37.7749, -122.4194),
        "Fresno": (36.7378, -119.7871),
        "Sacramento": (38.5816, -121.4944),
        "Long Beach": (33.7701, -118.1937),
        "Oakland": (37.8044, -122.2712),
        "Bakersfield": (35.3733, -119.0187),
        "Anaheim": (33.8366, -117.9143),
        "Santa Ana": (33.7455, -117.8677),
        "Riverside": (33.9806, -117.3755),
        "Irvine": (33.6846, -117.8265),
        "Oceanside": (33.1959, -117.3795),
        "Carlsbad": (33.1581, -117.3506),
        "Santa Barbara": (34.4208, -119.6982),
        "Santa Cruz": (36.9741, -122.0308),
        "Ventura": (34.2746, -119.2290),
        "San Luis Obispo": (35.2828, -120.6596),
    },
    "CO": {
        "Denver": (39.7392, -104.9903),
        "Colorado Springs": (38.8339, -104.8214),
        "Aurora": (39.7294, -104.8319),
        "Fort Collins": (40.5853, -105.0844),
        "Boulder": (40.0150, -105.2705),
        "Lakewood": (39.7047, -105.0814),
        "Longmont": (40.1672, -105.1019),
        "Grand Junction": (39.0639, -108.5506),
        "Durango": (37.2753, -107.8801),
    },
    "CT": {
        "Hartford": (41.7658, -72.6734),
        "New Haven": (41.3083, -72.9279),
        "Stamford": (41.0534, -73.5387),
        "Bridgeport": (41.1865, -73.1952),
    },
    "FL": {
        "Jacksonville": (30.3322, -81.6557),
        "Miami": (25.7617, -80.1918),
        "Tampa": (27.9506, -82.4572),
        "Orlando": (28.5383, -81.3792),
        "St. Petersburg": (27.7676, -82.6403),
        "Fort Lauderdale": (26.1224, -80.1373),
        "Tallahassee": (30.4383, -84.2807),
        "Sarasota": (27.3364, -82.5307),
        "Fort Myers": (26.6406, -81.8723),
        "Pensacola": (30.4213, -87.2169),
    },
    "NJ": {
        "Newark": (40.7357, -74.1724),
        "Jersey City": (40.7178, -74.0431),
        "Trenton": (40.2206, -74.7597),
        "Toms River": (39.9537, -74.1979),
    },
    "NM": {
        "Albuquerque": (35.0844, -106.6504),
        "Santa Fe": (35.6870, -105.9378),
        "Las Cruces": (32.3199, -106.7637),
        "Taos": (36.4072, -105.5731),
    },
    "NV": {
        "Las Vegas": (36.1699, -115.1398),
        "Henderson": (36.0395, -114.9817),
        "Reno": (39.5296, -119.8138),
        "Carson City": (39.1638, -119.7674),
        "Sparks": (39.5349, -119.7527),
    },
    "OR": {
        "Portland": (45.5152, -122.6784),
        "Eugene": (44.0521, -123.0868),
        "Salem": (44.9429, -123.0351),
        "Bend": (44.0582, -121.3153),
        "Medford": (42.3265, -122.8756),
        "Hood River": (45.7054, -121.5215),
    },
    "TX": {
        "Houston": (29.7604, -95.3698),
        "San Antonio": (29.4241, -98.4936),
        "Dallas": (32.7767, -96.7970),
        "Austin": (30.2672, -97.7431),
        "Fort Worth": (32.7555, -97.3308),
        "El Paso": (31.7619, -106.4850),
        "Arlington": (32.7357, -97.1081),
        "Plano": (33.0198, -96.6989),
        "Round Rock": (30.5083, -97.6789),
        "Waco": (31.5493, -97.1467),
    },
    "UT": {
        "Salt Lake City": (40.7608, -111.8910),
        "West Valley City": (40.6916, -112.0011),
        "Provo": (40.2338, -111.6585),
        "Ogden": (41.2230, -111.9738),
        "St. George": (37.0965, -113.5684),
        "Park City": (40.6461, -111.4980),
        "Moab": (38.5733, -109.5498),
    },
    "WA": {
        "Seattle": (47.6062, -122.3321),
        "Spokane": (47.6588, -117.4260),
        "Tacoma": (47.2529, -122.4443),
        "Vancouver": (45.6387, -122.6615),
        "Bellevue": (47.6101, -122.2015),
        "Bellingham": (48.7519, -122.4787),
        "Olympia": (47.0379, -122.9007),
    },
}

COUNTRY_CENTROID: Coordinates = (39.8283, -98.5795)


def normalize_state(value: Optional[str]) -> Optional[str]:
    """Return the postal abbreviation for an abbreviation or full state name."""
    if not value:
        return None
    cleaned = " ".join(value.split()).strip().rstrip(".")
    if cleaned.upper() in STATE_NAMES:
        return cleaned.upper()
    return _NAME_TO_ABBR.get(cleaned.lower())


# Cities whose names are also everyday words in builder copy; they only count beside a state.
COMMON_WORD_CITIES = frozenset({"Aurora", "Bend", "Boulder", "Mesa", "Mobile", "Sparks"})


def state_name(abbr: str) -> str:
    return STATE_NAMES.get(abbr.upper(), abbr)


def known_cities(state: str) -> List[str]:
    """Known cities for a state, longest first so "San Jose" wins over "Jose"."""
    cities = set(CITY_CENTROIDS.get(state.upper(), {}))
    default = STATE_DEFAULT_CITY.get(state.upper())
    if default:
        cities.add(default[0])
    return sorted(cities, key=lambda name: (-len(name), name))


def city_centroid(city: str, state: str) -> Optional[Coordinates]:
    table = CITY_CENTROIDS.get(state.upper(), {})
    wanted = city.strip().lower()
    for name, coords in table.items():
        if name.lower() == wanted:
            return coords
    default = STATE_DEFAULT_CITY.get(state.upper())
    if default and default[0].lower() == wanted:
        return default[1]
    return None
