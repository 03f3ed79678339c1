"""
Static airport facts and parameterized answer templates.

Facts are kept as structured data (duration -> rate, destination -> fare, and so
on) and templates reference them, so the same figure is never typed twice.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from config import AIRPORT_NAME, OFFICIAL_SITE_URL, SUPPORT_PHONE, TRANSPORT_PAGE_URL


@dataclass(frozen=True)
class RateBracket:
    """One row of a tariff table, covering (min_minutes, max_minutes]."""
    label: str
    min_minutes: int
    max_minutes: int
    amount: str

    def covers(self, minutes: float) -> bool:
        if self.min_minutes == 0:
            return 0 <= minutes <= self.max_minutes
        return self.min_minutes < minutes <= self.max_minutes


# P1/P2 short-term parking tariff
PARKING_RATES: Tuple[RateBracket, ...] = (
    RateBracket("0-30 minutes", 0, 30, "0.600"),
    RateBracket("30 minutes - 1 hour", 30, 60, "1.100"),
    RateBracket("1-2 hours", 60, 120, "2.100"),
    RateBracket("2-3 hours", 120, 180, "3.200"),
    RateBracket("3-4 hours", 180, 240, "5.100"),
    RateBracket("4-5 hours", 240, 300, "6.600"),
    RateBracket("5-6 hours", 300, 360, "8.100"),
    RateBracket("6-12 hours", 360, 720, "12.600"),
    RateBracket("12-24 hours", 720, 1440, "25.200"),
)
LONG_TERM_EXTRA_DAY = "21.000"

FORECOURT_CHARGES: Tuple[RateBracket, ...] = (
    RateBracket("First 10 minutes", 0, 10, "Free"),
    RateBracket("10-20 minutes", 10, 20, "0.600"),
    RateBracket("20-30 minutes", 20, 30, "1.200"),
    RateBracket("30-60 minutes", 30, 60, "6.000"),
)
FORECOURT_HOURLY_AFTER = "6.000"

TAXI_FLAG_FALL = "0.600"
TAXI_JOURNEY_TO_CITY = "30-45 minutes"
TAXI_FARES: Dict[str, str] = {
    "Muscat City Center": "8-12",
    "Seeb": "4-6",
    "Qurum": "6-8",
    "Ruwi": "10-14",
    "Old Muscat": "12-16",
}
# Query words that name a taxi destination
TAXI_DESTINATION_ALIASES: Dict[str, str] = {
    "old muscat": "Old Muscat",
    "city": "Muscat City Center",
    "downtown": "Muscat City Center",
    "seeb": "Seeb",
    "qurum": "Qurum",
    "ruwi": "Ruwi",
}

CAR_RENTAL_COMPANIES: Tuple[str, ...] = ("Avis", "Budget", "Europcar", "Dollar", "Thrifty", "Hertz", "Sixt")

DROP_OFF_LEVEL = "Level 2 (Departures)"
PICK_UP_LEVEL = "Level 1 (Arrivals)"
CHECK_IN_ADVICE = {"domestic": "2 hours", "international": "3 hours"}

FACILITIES_URL = f"{OFFICIAL_SITE_URL}/en/content/facilities"
DINING_URL = f"{OFFICIAL_SITE_URL}/en/content/restaurants-quick-bites"
LOUNGE_URL = f"{OFFICIAL_SITE_URL}/en/content/primeclass-lounge"
BAGGAGE_URL = f"{OFFICIAL_SITE_URL}/en/content/baggage"
FLIGHTS_URL = "https://omanairports.co.om/flights"
PARKING_URL = f"{TRANSPORT_PAGE_URL}#parking"


def rate_lines(brackets: Sequence[RateBracket]) -> List[str]:
    return [
        f"{b.label}: {b.amount}" if b.amount == "Free" else f"{b.label}: OMR {b.amount}"
        for b in brackets
    ]


def find_bracket(brackets: Sequence[RateBracket], minutes: float) -> Optional[RateBracket]:
    for bracket in brackets:
        if bracket.covers(minutes):
            return bracket
    return None


@dataclass(frozen=True)
class Template:
    """Hand-authored answer skeleton for one sub-type."""
    title: str
    sections: Tuple[Tuple[str, Tuple[str, ...]], ...]
    url: str = TRANSPORT_PAGE_URL
    link_label: str = f"{AIRPORT_NAME} Transportation"
    note: str = ""
    facts_heading: str = "Latest information"


def render(template: Template, facts: Optional[Sequence[str]] = None,
           source_url: Optional[str] = None) -> str:
    """
    Render a template, optionally leading with facts pulled from live content.

    Args:
        template: Template to render
        facts: Lines extracted from content blocks
        source_url: URL for the "More Information" link (defaults to the template's)

    Returns:
        Markdown answer text
    """
    parts = [f"**{template.title}:**"]
    if facts:
        parts.append(f"**{template.facts_heading}:**\n" + "\n".join(f"- {fact}" for fact in facts))
    for heading, lines in template.sections:
        parts.append(f"**{heading}:**\n" + "\n".join(f"- {line}" for line in lines))
    if template.note:
        parts.append(f"*{template.note}*")
    parts.append(f"**More Information:** [{template.link_label}]({source_url or template.url})")
    return "\n\n".join(parts)


def _t(title, sections, **kwargs) -> Template:
    return Template(
        title=title,
        sections=tuple((heading, tuple(lines)) for heading, lines in sections),
        **kwargs,
    )


_taxi_fare_lines = [f"{dest}: approximately OMR {fare}" for dest, fare in TAXI_FARES.items()]

TEMPLATES: Dict[str, Template] = {
    "human_assistance": _t(
        "Speak to Our Team",
        [("Contact", [
            f"Airport information desk: {SUPPORT_PHONE}",
            "Information desks are staffed in the arrivals and departures halls",
            "A member of our customer service team will follow up on this conversation",
        ])],
        url=OFFICIAL_SITE_URL, link_label=AIRPORT_NAME,
    ),
    "forecourt_charges": _t(
        f"Forecourt Charges at {AIRPORT_NAME}",
        [
            ("Pick-up & Drop-off Charges", rate_lines(FORECOURT_CHARGES) + [f"After 1 hour: OMR {FORECOURT_HOURLY_AFTER} per hour"]),
            ("Forecourt Areas", [f"Drop-off: {DROP_OFF_LEVEL}", f"Pick-up: {PICK_UP_LEVEL}"]),
            ("Payment", ["Pay at the exit barriers by cash or card", "Use P1 short-term parking for longer waits"]),
        ],
        link_label=f"{AIRPORT_NAME} Parking", url=PARKING_URL,
    ),
    "unattended_vehicle": _t(
        f"Unattended Vehicle Policy at {AIRPORT_NAME}",
        [
            ("Rules", [
                "Vehicles must not be left unattended in the drop-off zones",
                "Unattended vehicles may be towed at the owner's expense and fines may apply",
            ]),
            ("Alternatives", ["Use P1 short-term parking if you need to leave your vehicle", "Stay with your vehicle at all times in the forecourt"]),
        ],
        link_label=f"{AIRPORT_NAME} Parking Policies", url=PARKING_URL,
    ),
    "business_pickup": _t(
        f"Business Class Pick-up at {AIRPORT_NAME}",
        [
            ("Location", [f"{PICK_UP_LEVEL} premium area", "Designated zones close to the premium exits"]),
            ("Services", ["Meet and greet services available", "Baggage assistance for premium passengers", "Advance booking recommended for VIP services"]),
        ],
        link_label=f"{AIRPORT_NAME} Premium Services",
    ),
    "business_dropoff": _t(
        f"Business Class Drop-off at {AIRPORT_NAME}",
        [
            ("Location", [f"{DROP_OFF_LEVEL} premium area", "Clearly marked business class signage near premium check-in"]),
            ("Services", ["Porter and baggage assistance", "Direct access to fast-track security and premium lounges"]),
        ],
        link_label=f"{AIRPORT_NAME} Premium Services",
    ),
    "pickup_timing": _t(
        f"Pick-up Timing at {AIRPORT_NAME}",
        [
            ("When to Arrive", [
                "Domestic flights: 20-30 minutes after landing",
                "International flights: 45-60 minutes after landing",
                "Monitor the flight status for delays or early arrivals",
            ]),
            ("Forecourt Time Limits", rate_lines(FORECOURT_CHARGES[:2])),
        ],
        link_label=f"{AIRPORT_NAME} Flight Information",
    ),
    "dropoff_timing": _t(
        f"Drop-off Timing at {AIRPORT_NAME}",
        [
            ("Recommended Arrival", [
                f"Domestic flights: {CHECK_IN_ADVICE['domestic']} before departure",
                f"International flights: {CHECK_IN_ADVICE['international']} before departure",
            ]),
            ("Time Limits", rate_lines(FORECOURT_CHARGES[:2]) + ["Charges apply after the free period"]),
        ],
        link_label=f"{AIRPORT_NAME} Check-in Information",
    ),
    "pickup_location": _t(
        f"Pick-up Locations at {AIRPORT_NAME}",
        [("Main Pick-up Area", [PICK_UP_LEVEL, "Exit the arrivals hall and follow the pick-up signs", "Separate zones for taxis and ride-sharing"])],
        link_label=f"{AIRPORT_NAME} Terminal Map",
    ),
    "dropoff_location": _t(
        f"Drop-off Locations at {AIRPORT_NAME}",
        [("Main Drop-off Area", [DROP_OFF_LEVEL, "Follow the departures signs when approaching the terminal", "No parking allowed in the drop-off lanes"])],
        link_label=f"{AIRPORT_NAME} Terminal Access",
    ),
    "parking_payment": _t(
        f"Parking Payment at {AIRPORT_NAME}",
        [
            ("Where to Pay", ["Payment stations in each parking area (P1, P2, P3)", "Exit gates accept payment before leaving"]),
            ("Methods Accepted", ["Cash in Omani Rials", "Credit and debit cards", "Contactless payment"]),
        ],
        link_label=f"{AIRPORT_NAME} Parking", url=PARKING_URL,
    ),
    "long_term_parking": _t(
        f"Long-term Parking at {AIRPORT_NAME}",
        [("P3 Long Term Parking", [
            f"12-24 hours: OMR {PARKING_RATES[-1].amount}",
            f"After 24 hours: OMR {LONG_TERM_EXTRA_DAY} per additional day",
            "Most economical choice for trips longer than a day",
        ])],
        link_label=f"{AIRPORT_NAME} Parking", url=PARKING_URL,
    ),
    "parking_24h": _t(
        f"24-Hour Parking at {AIRPORT_NAME}",
        [
            ("Availability", ["Yes, P1, P2 and P3 are open 24/7", "Payment stations operate 24 hours"]),
            ("24-Hour Rates", [f"P1/P2 12-24 hours: OMR {PARKING_RATES[-1].amount}", f"P3 after 24 hours: OMR {LONG_TERM_EXTRA_DAY} per additional day"]),
        ],
        link_label=f"{AIRPORT_NAME} Parking", url=PARKING_URL,
    ),
    "parking_areas": _t(
        f"Parking Areas at {AIRPORT_NAME}",
        [("Comparison", [
            "P1 Short Term: closest to the terminal, ideal for stays up to 12 hours",
            "P2 Short Term & Premium: same rates as P1 with premium features",
            "P3 Long Term: most economical for stays over 24 hours",
        ])],
        link_label=f"{AIRPORT_NAME} Parking", url=PARKING_URL,
    ),
    "parking_rates": _t(
        f"Parking Rates at {AIRPORT_NAME}",
        [
            ("P1 Short Term Parking", rate_lines(PARKING_RATES)),
            ("P3 Long Term Parking", [f"After 24 hours: OMR {LONG_TERM_EXTRA_DAY} per additional day"]),
        ],
        link_label=f"{AIRPORT_NAME} Parking", url=PARKING_URL,
        note="All rates include VAT.",
    ),
    "parking_info": _t(
        f"Parking at {AIRPORT_NAME}",
        [
            ("Parking Options", ["P1 Short Term Parking, closest to the terminal", "P3 Long Term Parking, economical for extended stays", "Pick-up and drop-off forecourt with the first 10 minutes free"]),
            ("Quick Rates", rate_lines(PARKING_RATES[:3])),
        ],
        link_label=f"{AIRPORT_NAME} Parking", url=PARKING_URL,
    ),
    "map_directions": _t(
        f"Maps and Directions for {AIRPORT_NAME}",
        [("Finding Your Way", ["Search for \"Muscat International Airport\" in any GPS navigation app", "Terminal maps are available at the information desks", "The official website has an interactive terminal map"])],
        link_label=f"{AIRPORT_NAME} Directions",
    ),
    "taxi_fares": _t(
        f"Taxi Fares from {AIRPORT_NAME}",
        [
            ("Fare Information", [f"Starting rate: OMR {TAXI_FLAG_FALL}", "Meter-based pricing", f"Journey time to the city: {TAXI_JOURNEY_TO_CITY}"]),
            ("Popular Destinations", _taxi_fare_lines),
        ],
        note="Fares may vary with traffic and time of day.",
    ),
    "taxi_meter": _t(
        f"Taxi Meters at {AIRPORT_NAME}",
        [("Meter Usage", [
            "Yes, airport taxis use government-regulated meters",
            f"Starting rate (flag fall): OMR {TAXI_FLAG_FALL}",
            "Ask for a receipt at the end of your journey",
            f"Report any issues to airport information on {SUPPORT_PHONE}",
        ])],
    ),
    "car_rental": _t(
        f"Car Rental at {AIRPORT_NAME}",
        [
            ("Availability", ["Yes, car rental is available 24/7 in the arrivals hall", "Desks are located on " + PICK_UP_LEVEL]),
            ("Rental Companies", list(CAR_RENTAL_COMPANIES)),
            ("Requirements", ["Valid driving licence (international licence for some nationalities)", "Credit card for the deposit"]),
        ],
    ),
    "taxi_info": _t(
        f"Taxi Services at {AIRPORT_NAME}",
        [("Service Details", [
            "Licensed airport taxis available 24/7 outside the arrivals hall",
            f"Meters are used, starting from OMR {TAXI_FLAG_FALL}",
            f"Muscat City Center: approximately OMR {TAXI_FARES['Muscat City Center']}",
            "Ride-hailing apps such as Careem and Uber also operate",
        ])],
    ),
    "hotel_shuttle": _t(
        f"Hotel Shuttles at {AIRPORT_NAME}",
        [("Hotel Transfers", ["Many hotels offer shuttle services on request", "Contact your hotel in advance to book a pick-up", "Shuttles collect guests from " + PICK_UP_LEVEL])],
    ),
    "public_transport": _t(
        f"Public Transport at {AIRPORT_NAME}",
        [("Buses", ["Public buses are operated by Mwasalat", "Bus stops are located outside the arrivals hall", "Routes connect the airport with Muscat city and Ruwi"])],
        note="Check the Mwasalat timetable for current schedules.",
    ),
    "private_driver": _t(
        f"Private Transfers at {AIRPORT_NAME}",
        [("Options", ["Chauffeur and limousine services can be pre-booked", "Meet drivers at " + PICK_UP_LEVEL, "Pre-booked transfers are also available through hotels"])],
    ),
    "directions": _t(
        f"Directions to {AIRPORT_NAME}",
        [
            ("Main Route", ["Sultan Qaboos Highway (Highway 1)", "Northbound from Muscat towards Seeb", f"Travel time from the city: {TAXI_JOURNEY_TO_CITY}"]),
            ("From the City Center", ["Join Sultan Qaboos Highway northbound", "Follow the blue airport signs to the airport exit", "Follow the terminal signs"]),
        ],
        link_label=f"{AIRPORT_NAME} Directions",
    ),
    "facilities": _t(
        f"Facilities at {AIRPORT_NAME}",
        [
            ("Terminal Facilities", ["Information desks and customer service", "Currency exchange and ATMs", "Medical center and pharmacy", "Lost and found and baggage services"]),
            ("Comfort & Connectivity", ["Lounges for premium passengers", "Prayer rooms", "Free WiFi and charging stations"]),
        ],
        url=FACILITIES_URL, link_label=f"{AIRPORT_NAME} Facilities Guide",
    ),
    "dining": _t(
        f"Dining at {AIRPORT_NAME}",
        [("Restaurants & Cafes", ["International and local Omani cuisine", "Coffee shops and grab-and-go outlets", "24-hour options available", "Halal options throughout"])],
        url=DINING_URL, link_label=f"{AIRPORT_NAME} Restaurants",
    ),
    "shopping": _t(
        f"Shopping at {AIRPORT_NAME}",
        [("Shopping Options", ["Duty-free shops", "Omani frankincense, perfumes and handicrafts", "Electronics, books and accessories", "Major credit cards accepted"])],
        url=FACILITIES_URL, link_label=f"{AIRPORT_NAME} Shopping",
    ),
    "connectivity": _t(
        f"WiFi & Charging at {AIRPORT_NAME}",
        [("Connectivity", ["Free WiFi throughout the terminal", "Charging stations and USB ports at seating areas", "Power outlets near the gates"])],
        url=FACILITIES_URL, link_label=f"{AIRPORT_NAME} Facilities",
    ),
    "lounge": _t(
        f"Lounges at {AIRPORT_NAME}",
        [
            ("Lounge Options", ["Primeclass lounges", "Airline business and first class lounges"]),
            ("Access", ["Business or first class tickets", "Lounge membership programs", "Day passes available for purchase"]),
        ],
        url=LOUNGE_URL, link_label=f"{AIRPORT_NAME} Lounges",
    ),
    "prayer": _t(
        f"Prayer Facilities at {AIRPORT_NAME}",
        [("Prayer Rooms", ["Prayer rooms in the terminal with separate facilities for men and women", "Ablution facilities provided", "Open 24/7 and clearly signposted"])],
        url=FACILITIES_URL, link_label=f"{AIRPORT_NAME} Facilities",
    ),
    "restrooms": _t(
        f"Restrooms at {AIRPORT_NAME}",
        [("Restrooms", ["Restrooms throughout the terminal and near every gate area", "Accessible restrooms and baby changing facilities"])],
        url=FACILITIES_URL, link_label=f"{AIRPORT_NAME} Facilities",
    ),
    "medical": _t(
        f"Medical Services at {AIRPORT_NAME}",
        [("Medical Facilities", ["Medical center with qualified staff", "Pharmacy for basic medication", "24/7 emergency assistance"])],
        url=FACILITIES_URL, link_label=f"{AIRPORT_NAME} Facilities",
        note="For medical emergencies contact airport security immediately.",
    ),
    "baggage": _t(
        f"Baggage Services at {AIRPORT_NAME}",
        [
            ("Baggage Services", ["Baggage wrapping and oversized baggage handling", "Left luggage storage"]),
            ("Lost & Found", ["Report lost baggage at the baggage claim area", "Staff will help you file a report and track your luggage"]),
        ],
        url=BAGGAGE_URL, link_label=f"{AIRPORT_NAME} Baggage",
    ),
    "flight_info": _t(
        f"Flight Information at {AIRPORT_NAME}",
        [("Flight Status", [
            "Provide your flight number (for example WY123) for status details",
            "Flight information displays are located throughout the terminal",
            f"Arrive {CHECK_IN_ADVICE['domestic']} before domestic and {CHECK_IN_ADVICE['international']} before international flights",
        ])],
        url=FLIGHTS_URL, link_label="Oman Airports Flight Information",
    ),
}

GREETING_MESSAGE = "Hello! Welcome to Oman Airports. How can I assist you today?"

COMPLAINT_MESSAGE = (
    "I understand your concern and I apologize for any inconvenience. Your feedback is "
    "important to us. I'll connect you with our customer service team who can better "
    "assist you with this matter."
)

FLIGHT_DESK_MESSAGE = (
    "For the latest status of flight {flight_number}, please check the flight information "
    "displays in the terminal or the Oman Airports flights page. Our information desk on "
    f"{SUPPORT_PHONE} can also help."
)

REPHRASE_MESSAGE = (
    "I'm here to help with information about Oman Airports. Could you please rephrase "
    "your question or be more specific?"
)

ERROR_MESSAGE = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Please try again or contact our support team for assistance."
)
