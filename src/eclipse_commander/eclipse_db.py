"""
Bundled Solar Eclipse Catalog

Contains central-line samples for upcoming solar eclipses:
- 2026 Aug 12 total (Greenland, Iceland, Spain)
- 2027 Feb 06 annular (South America, Atlantic, West Africa)
- 2027 Aug 02 total (Spain, North Africa, Arabia)
- 2028 Jul 22 total (Australia, New Zealand)
- 2029 Jan 14 partial (North America)

Central-line positions and durations are rounded values compiled from
published eclipse maps; they are adequate for field planning, not for
contact-time predictions to the second.
"""

from typing import List, Dict, Any, Optional

# Eclipse entries: id, ISO date, type, magnitude, path width, max duration and
# central-line points (lat, lon, duration in seconds, optional place name)

ECLIPSE_DATABASE: List[Dict[str, Any]] = [
    # ==========================================================================
    # 2026 August 12 - Total
    # Greatest eclipse off western Iceland, path ends at sunset over Spain
    # ==========================================================================
    {"id": "2026-08-12-total", "name": "Total Solar Eclipse of 2026 August 12",
     "date": "2026-08-12", "type": "total", "magnitude": 1.039,
     "pathWidthKm": 294, "maxDurationSeconds": 138,
     "path": [
         {"lat": 76.50, "lon": -16.00, "duration": 118, "name": "NE Greenland"},
         {"lat": 70.50, "lon": -22.00, "duration": 130, "name": "Scoresby Sund"},
         {"lat": 65.20, "lon": -25.20, "duration": 138, "name": "Greatest eclipse"},
         {"lat": 64.15, "lon": -21.94, "duration": 130, "name": "Reykjavik"},
         {"lat": 55.00, "lon": -17.00, "duration": 125},
         {"lat": 43.36, "lon": -5.85, "duration": 106, "name": "Oviedo"},
         {"lat": 41.65, "lon": -4.72, "duration": 104, "name": "Valladolid"},
         {"lat": 41.65, "lon": -0.88, "duration": 100, "name": "Zaragoza"},
         {"lat": 39.57, "lon": 2.65, "duration": 96, "name": "Palma de Mallorca"},
     ]},

    # ==========================================================================
    # 2027 February 06 - Annular
    # ==========================================================================
    {"id": "2027-02-06-annular", "name": "Annular Solar Eclipse of 2027 February 06",
     "date": "2027-02-06", "type": "annular", "magnitude": 0.928,
     "pathWidthKm": 282, "maxDurationSeconds": 471,
     "path": [
         {"lat": -45.57, "lon": -72.07, "duration": 420, "name": "Coyhaique"},
         {"lat": -40.00, "lon": -62.00, "duration": 440},
         {"lat": -31.30, "lon": -28.40, "duration": 471, "name": "Greatest eclipse"},
         {"lat": -10.00, "lon": -12.00, "duration": 455},
         {"lat": 5.35, "lon": -4.01, "duration": 410, "name": "Abidjan"},
         {"lat": 6.69, "lon": -1.62, "duration": 400, "name": "Kumasi"},
     ]},

    # ==========================================================================
    # 2027 August 02 - Total
    # Longest totality over land this century near Luxor
    # ==========================================================================
    {"id": "2027-08-02-total", "name": "Total Solar Eclipse of 2027 August 02",
     "date": "2027-08-02", "type": "total", "magnitude": 1.079,
     "pathWidthKm": 258, "maxDurationSeconds": 383,
     "path": [
         {"lat": 36.53, "lon": -6.29, "duration": 270, "name": "Cadiz"},
         {"lat": 36.14, "lon": -5.35, "duration": 275, "name": "Gibraltar"},
         {"lat": 35.77, "lon": -5.80, "duration": 291, "name": "Tangier"},
         {"lat": 35.00, "lon": 0.00, "duration": 310},
         {"lat": 33.50, "lon": 8.00, "duration": 330},
         {"lat": 32.10, "lon": 14.00, "duration": 350, "name": "Gulf of Sirte"},
         {"lat": 29.00, "lon": 25.00, "duration": 370},
         {"lat": 25.69, "lon": 32.64, "duration": 383, "name": "Luxor"},
         {"lat": 21.49, "lon": 39.19, "duration": 375, "name": "Jeddah"},
         {"lat": 15.37, "lon": 44.19, "duration": 340, "name": "Sana'a"},
         {"lat": 11.00, "lon": 50.00, "duration": 300},
     ]},

    # ==========================================================================
    # 2028 July 22 - Total
    # ==========================================================================
    {"id": "2028-07-22-total", "name": "Total Solar Eclipse of 2028 July 22",
     "date": "2028-07-22", "type": "total", "magnitude": 1.056,
     "pathWidthKm": 230, "maxDurationSeconds": 310,
     "path": [
         {"lat": -14.50, "lon": 122.00, "duration": 305},
         {"lat": -15.60, "lon": 126.70, "duration": 310, "name": "Greatest eclipse"},
         {"lat": -20.00, "lon": 135.00, "duration": 295},
         {"lat": -26.00, "lon": 143.00, "duration": 270},
         {"lat": -30.30, "lon": 147.00, "duration": 250},
         {"lat": -33.87, "lon": 151.21, "duration": 230, "name": "Sydney"},
         {"lat": -45.87, "lon": 170.50, "duration": 170, "name": "Dunedin"},
     ]},

    # ==========================================================================
    # 2029 January 14 - Partial
    # Partial eclipses have no central line, only the point of greatest eclipse
    # ==========================================================================
    {"id": "2029-01-14-partial", "name": "Partial Solar Eclipse of 2029 January 14",
     "date": "2029-01-14", "type": "partial", "magnitude": 0.871,
     "pathWidthKm": None, "maxDurationSeconds": None,
     "path": [
         {"lat": 63.70, "lon": -114.20, "duration": None, "name": "Greatest eclipse"},
     ]},
]


def get_eclipse_entry(eclipse_id: str) -> Optional[Dict[str, Any]]:
    """Get a raw catalog entry by id, or None."""
    for entry in ECLIPSE_DATABASE:
        if entry["id"] == eclipse_id:
            return entry
    return None


def get_entries_by_type(eclipse_type: str) -> List[Dict[str, Any]]:
    """Get all raw entries of one type ('total', 'annular', 'partial')."""
    return [e for e in ECLIPSE_DATABASE if e["type"] == eclipse_type]


def get_all_eclipse_ids() -> List[str]:
    """Ids of all bundled eclipses in chronological order."""
    return [e["id"] for e in sorted(ECLIPSE_DATABASE, key=lambda e: e["date"])]
