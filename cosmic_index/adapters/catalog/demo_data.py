"""Small seed catalog served by the in-memory fetcher.

Values are rounded public figures, good enough to exercise filtering,
ordering and pagination. They are not a scientific reference.
"""

EXOPLANETS = [
    {
        "id": "proxima-cen-b",
        "name": "Proxima Cen b",
        "hostStar": "Proxima Centauri",
        "discoveryMethod": "Radial Velocity",
        "discoveryYear": 2016,
        "facility": "European Southern Observatory",
        "radiusEarth": None,
        "massEarth": 1.07,
        "distancePc": 1.30,
        "sizeCategory": "earth",
        "systemPlanetCount": 2,
    },
    {
        "id": "trappist-1-e",
        "name": "TRAPPIST-1 e",
        "hostStar": "TRAPPIST-1",
        "discoveryMethod": "Transit",
        "discoveryYear": 2017,
        "facility": "Spitzer Space Telescope",
        "radiusEarth": 0.92,
        "massEarth": 0.69,
        "distancePc": 12.47,
        "sizeCategory": "earth",
        "systemPlanetCount": 7,
    },
    {
        "id": "kepler-452-b",
        "name": "Kepler-452 b",
        "hostStar": "Kepler-452",
        "discoveryMethod": "Transit",
        "discoveryYear": 2015,
        "facility": "Kepler",
        "radiusEarth": 1.63,
        "massEarth": None,
        "distancePc": 551.73,
        "sizeCategory": "super-earth",
        "systemPlanetCount": 1,
    },
    {
        "id": "55-cnc-e",
        "name": "55 Cnc e",
        "hostStar": "55 Cancri",
        "discoveryMethod": "Radial Velocity",
        "discoveryYear": 2004,
        "facility": "McDonald Observatory",
        "radiusEarth": 1.88,
        "massEarth": 7.99,
        "distancePc": 12.59,
        "sizeCategory": "super-earth",
        "systemPlanetCount": 5,
    },
    {
        "id": "gj-1214-b",
        "name": "GJ 1214 b",
        "hostStar": "GJ 1214",
        "discoveryMethod": "Transit",
        "discoveryYear": 2009,
        "facility": "MEarth Project",
        "radiusEarth": 2.74,
        "massEarth": 8.17,
        "distancePc": 14.64,
        "sizeCategory": "neptune",
        "systemPlanetCount": 1,
    },
    {
        "id": "hd-209458-b",
        "name": "HD 209458 b",
        "hostStar": "HD 209458",
        "discoveryMethod": "Radial Velocity",
        "discoveryYear": 1999,
        "facility": "W. M. Keck Observatory",
        "radiusEarth": 15.45,
        "massEarth": 219.0,
        "distancePc": 48.30,
        "sizeCategory": "jupiter",
        "systemPlanetCount": 1,
    },
    {
        "id": "51-peg-b",
        "name": "51 Peg b",
        "hostStar": "51 Pegasi",
        "discoveryMethod": "Radial Velocity",
        "discoveryYear": 1995,
        "facility": "Haute-Provence Observatory",
        "radiusEarth": None,
        "massEarth": 146.0,
        "distancePc": 15.47,
        "sizeCategory": "jupiter",
        "systemPlanetCount": 1,
    },
    {
        "id": "toi-700-d",
        "name": "TOI-700 d",
        "hostStar": "TOI-700",
        "discoveryMethod": "Transit",
        "discoveryYear": 2020,
        "facility": "Transiting Exoplanet Survey Satellite (TESS)",
        "radiusEarth": 1.07,
        "massEarth": 1.72,
        "distancePc": 31.13,
        "sizeCategory": "earth",
        "systemPlanetCount": 4,
    },
    {
        "id": "beta-pic-b",
        "name": "beta Pic b",
        "hostStar": "beta Pictoris",
        "discoveryMethod": "Imaging",
        "discoveryYear": 2008,
        "facility": "Paranal Observatory",
        "radiusEarth": 18.5,
        "massEarth": 3560.0,
        "distancePc": 19.44,
        "sizeCategory": "jupiter",
        "systemPlanetCount": 2,
    },
    {
        "id": "ogle-2005-blg-390l-b",
        "name": "OGLE-2005-BLG-390L b",
        "hostStar": "OGLE-2005-BLG-390L",
        "discoveryMethod": "Microlensing",
        "discoveryYear": 2005,
        "facility": "OGLE",
        "radiusEarth": None,
        "massEarth": 5.5,
        "distancePc": None,
        "sizeCategory": "super-earth",
        "systemPlanetCount": 1,
    },
]

STARS = [
    {
        "id": "proxima-centauri",
        "name": "Proxima Centauri",
        "spectralClass": "M5.5V",
        "planetCount": 2,
        "distancePc": 1.30,
        "vmag": 11.13,
    },
    {
        "id": "trappist-1",
        "name": "TRAPPIST-1",
        "spectralClass": "M8V",
        "planetCount": 7,
        "distancePc": 12.47,
        "vmag": 18.8,
    },
    {
        "id": "55-cancri",
        "name": "55 Cancri",
        "spectralClass": "K0IV-V",
        "planetCount": 5,
        "distancePc": 12.59,
        "vmag": 5.95,
    },
    {
        "id": "51-pegasi",
        "name": "51 Pegasi",
        "spectralClass": "G2IV",
        "planetCount": 1,
        "distancePc": 15.47,
        "vmag": 5.46,
    },
    {
        "id": "hd-209458",
        "name": "HD 209458",
        "spectralClass": "F9V",
        "planetCount": 1,
        "distancePc": 48.30,
        "vmag": 7.65,
    },
    {
        "id": "beta-pictoris",
        "name": "beta Pictoris",
        "spectralClass": "A6V",
        "planetCount": 2,
        "distancePc": 19.44,
        "vmag": 3.86,
    },
    {
        "id": "kepler-452",
        "name": "Kepler-452",
        "spectralClass": "G2V",
        "planetCount": 1,
        "distancePc": 551.73,
        "vmag": 13.43,
    },
    {
        "id": "toi-700",
        "name": "TOI-700",
        "spectralClass": "M2V",
        "planetCount": 4,
        "distancePc": 31.13,
        "vmag": None,
    },
]

SMALL_BODIES = [
    {
        "id": "1",
        "name": "1 Ceres",
        "kind": "asteroid",
        "neo": False,
        "pha": False,
        "orbitClass": "MBA",
        "diameterKm": 939.4,
    },
    {
        "id": "4",
        "name": "4 Vesta",
        "kind": "asteroid",
        "neo": False,
        "pha": False,
        "orbitClass": "MBA",
        "diameterKm": 525.4,
    },
    {
        "id": "433",
        "name": "433 Eros",
        "kind": "asteroid",
        "neo": True,
        "pha": False,
        "orbitClass": "AMO",
        "diameterKm": 16.84,
    },
    {
        "id": "99942",
        "name": "99942 Apophis",
        "kind": "asteroid",
        "neo": True,
        "pha": True,
        "orbitClass": "ATE",
        "diameterKm": 0.34,
    },
    {
        "id": "101955",
        "name": "101955 Bennu",
        "kind": "asteroid",
        "neo": True,
        "pha": True,
        "orbitClass": "APO",
        "diameterKm": 0.49,
    },
    {
        "id": "1P",
        "name": "1P/Halley",
        "kind": "comet",
        "neo": False,
        "pha": False,
        "orbitClass": "HTC",
        "diameterKm": 11.0,
    },
    {
        "id": "67P",
        "name": "67P/Churyumov-Gerasimenko",
        "kind": "comet",
        "neo": False,
        "pha": False,
        "orbitClass": "JFc",
        "diameterKm": 4.1,
    },
    {
        "id": "2I",
        "name": "2I/Borisov",
        "kind": "comet",
        "neo": False,
        "pha": False,
        "orbitClass": "HYP",
        "diameterKm": None,
    },
]

DEMO_CATALOGS = {
    "exoplanets": EXOPLANETS,
    "stars": STARS,
    "small-bodies": SMALL_BODIES,
}
