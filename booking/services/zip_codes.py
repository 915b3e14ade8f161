"""
Static ZIP-code coordinate table for the St. Louis service area.

Used by the pricing engine to estimate pickup → store distance without a
geocoding round-trip. Coordinates are ZIP centroids (lat, lng).
"""

import logging
from typing import Tuple

logger = logging.getLogger(__name__)


# Downtown St. Louis, used when a ZIP is not in the table
DEFAULT_COORDINATES = (38.6270, -90.1994)

ZIP_COORDINATES = {
    # St. Louis City
    '63101': (38.6313, -90.1922),
    '63102': (38.6351, -90.1868),
    '63103': (38.6316, -90.2164),
    '63104': (38.6128, -90.2185),
    '63106': (38.6441, -90.2081),
    '63107': (38.6646, -90.2124),
    '63108': (38.6445, -90.2540),
    '63109': (38.5853, -90.2961),
    '63110': (38.6185, -90.2563),
    '63111': (38.5601, -90.2494),
    '63112': (38.6616, -90.2820),
    '63113': (38.6579, -90.2446),
    '63115': (38.6795, -90.2388),
    '63116': (38.5811, -90.2628),
    '63118': (38.5941, -90.2306),
    '63139': (38.6103, -90.2918),
    '63147': (38.6936, -90.2156),

    # St. Louis County
    '63105': (38.6457, -90.3265),   # Clayton
    '63114': (38.7039, -90.3599),   # Overland
    '63117': (38.6292, -90.3246),   # Richmond Heights
    '63119': (38.5889, -90.3500),   # Webster Groves
    '63121': (38.7051, -90.3002),   # Normandy
    '63122': (38.5781, -90.4207),   # Kirkwood
    '63123': (38.5487, -90.3261),   # Affton
    '63124': (38.6379, -90.3776),   # Ladue
    '63125': (38.5184, -90.2958),   # Lemay
    '63126': (38.5505, -90.3805),   # Crestwood
    '63127': (38.5335, -90.4112),   # Sunset Hills
    '63128': (38.4907, -90.3813),
    '63129': (38.4561, -90.3284),   # Oakville
    '63130': (38.6650, -90.3241),   # University City
    '63131': (38.6172, -90.4432),   # Town and Country
    '63132': (38.6745, -90.3735),   # Olivette
    '63135': (38.7504, -90.3000),   # Ferguson
    '63136': (38.7380, -90.2599),
    '63141': (38.6581, -90.4562),   # Creve Coeur
    '63143': (38.6117, -90.3210),   # Maplewood
    '63144': (38.6188, -90.3485),   # Brentwood
    '63146': (38.6990, -90.4756),
    '63005': (38.6461, -90.6490),
    '63011': (38.6046, -90.5596),   # Ballwin
    '63017': (38.6531, -90.5826),   # Chesterfield
    '63021': (38.5681, -90.5446),   # Manchester
    '63025': (38.4906, -90.6290),   # Eureka
    '63031': (38.8050, -90.3450),   # Florissant
    '63033': (38.7958, -90.2731),
    '63034': (38.8430, -90.2883),
    '63042': (38.7874, -90.3836),   # Hazelwood
    '63043': (38.7290, -90.4624),   # Maryland Heights
    '63044': (38.7664, -90.4248),   # Bridgeton
    '63074': (38.7255, -90.3886),   # St. Ann

    # St. Charles County
    '63301': (38.7997, -90.4869),   # St. Charles
    '63303': (38.7416, -90.5458),
    '63304': (38.7198, -90.6299),
    '63366': (38.8536, -90.7390),   # O'Fallon
    '63376': (38.7940, -90.6069),   # St. Peters

    # Metro East (Illinois)
    '62025': (38.8300, -89.9670),   # Edwardsville
    '62201': (38.6410, -90.1327),   # East St. Louis
    '62221': (38.5189, -89.9740),   # Belleville
}


def normalize_zip(zip_code) -> str:
    """Reduce ZIP or ZIP+4 input to its 5-digit form."""
    if zip_code is None:
        return ''
    digits = ''.join(ch for ch in str(zip_code) if ch.isdigit())
    return digits[:5]


def lookup_zip(zip_code) -> Tuple[float, float, bool]:
    """
    Get centroid coordinates for a ZIP code.

    Returns:
        Tuple of (latitude, longitude, found). When the ZIP is unknown the
        downtown centroid is returned with found=False.
    """
    key = normalize_zip(zip_code)
    coordinates = ZIP_COORDINATES.get(key)
    if coordinates is None:
        logger.info(f"ZIP {zip_code!r} not in coordinate table, using downtown centroid")
        return DEFAULT_COORDINATES[0], DEFAULT_COORDINATES[1], False
    return coordinates[0], coordinates[1], True


def is_service_area(zip_code) -> bool:
    return normalize_zip(zip_code) in ZIP_COORDINATES
