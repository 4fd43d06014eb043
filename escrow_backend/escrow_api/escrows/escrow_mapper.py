"""
Escrow data mapper.

Turns the escrow storage map into the display model served by the API:

- scales i128 amounts by 10^decimals (from trustline.decimals)
- accepts i128 as {hi, lo} or as a decimal string
- clamps decimals to [0, 18]
- never raises for malformed input; missing or mistyped fields become "N/A"
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, Context, ROUND_HALF_UP, InvalidOperation
from typing import Dict, List, Optional

from ..constants.constants import NOT_AVAILABLE, MAPPER_DEFAULT_DECIMALS, MAPPER_MAX_DECIMALS, SINGLE_RELEASE, \
    MULTI_RELEASE, AMOUNT_DISPLAY_PLACES, BALANCE_DISPLAY_PLACES, MILESTONE_AMOUNT_DISPLAY_PLACES
from .tagged_value import BoolValue, StringValue, AddressValue, U32Value, I128Value, VecValue, MapValue, MapEntry, \
    find_entry, i128_to_int_flexible, parse_map_entries

logger = logging.getLogger('escrow_app')

# i128 values have up to 39 digits, plus up to 18 decimal places
DECIMAL_CONTEXT = Context(prec=100, rounding=ROUND_HALF_UP)

FLAG_ALIASES = {
    'disputed': 'dispute_flag',
    'dispute_flag': 'dispute_flag',
    'released': 'release_flag',
    'release_flag': 'release_flag',
    'resolved': 'resolved_flag',
    'resolved_flag': 'resolved_flag',
}


@dataclass(frozen=True)
class ParsedMilestone:
    id: int
    title: str
    description: str
    status: str
    approved: bool
    # Multi-release only
    amount: Optional[str] = None
    release_flag: Optional[bool] = None
    dispute_flag: Optional[bool] = None
    resolved_flag: Optional[bool] = None
    signer: Optional[str] = None
    approver: Optional[str] = None
    multi_release: bool = False

    def to_dict(self):
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'approved': self.approved,
        }
        if self.multi_release:
            data.update({
                'amount': self.amount,
                'release_flag': self.release_flag,
                'dispute_flag': self.dispute_flag,
                'resolved_flag': self.resolved_flag,
                'signer': self.signer,
                'approver': self.approver,
            })
        return data


@dataclass(frozen=True)
class OrganizedEscrowData:
    title: str
    description: str
    properties: Dict[str, str]
    roles: Dict[str, str]
    flags: Dict[str, str]
    milestones: List[ParsedMilestone] = field(default_factory=list)
    progress: float = 0
    escrow_type: str = SINGLE_RELEASE

    def to_dict(self):
        return {
            'title': self.title,
            'description': self.description,
            'properties': dict(self.properties),
            'roles': dict(self.roles),
            'flags': dict(self.flags),
            'milestones': [milestone.to_dict() for milestone in self.milestones],
            'progress': self.progress,
            'escrow_type': self.escrow_type,
        }


# ---- helpers ----

def coerce_escrow_map(data):
    """Accept an already parsed EscrowMap or the raw JSON list of {key, val} entries."""
    if data is None:
        return None
    if isinstance(data, MapValue):
        return data.entries
    if all(isinstance(entry, MapEntry) for entry in data):
        return tuple(data)
    return parse_map_entries(data)


def get_decimals_from_escrow_map(data) -> Optional[int]:
    trustline = find_entry(data, 'trustline')
    if not isinstance(trustline, MapValue):
        return None
    decimals = trustline.get('decimals')
    if isinstance(decimals, U32Value):
        return decimals.value
    return None


def safe_decimals(decimals) -> int:
    if isinstance(decimals, bool) or not isinstance(decimals, (int, float, Decimal)):
        return MAPPER_DEFAULT_DECIMALS
    try:
        decimals = int(decimals)
    except (ValueError, OverflowError):
        return MAPPER_DEFAULT_DECIMALS
    if decimals < 0:
        return 0
    if decimals > MAPPER_MAX_DECIMALS:
        return MAPPER_MAX_DECIMALS
    return decimals


def format_fixed(value, places: int) -> str:
    exponent = Decimal(1).scaleb(-places, context=DECIMAL_CONTEXT)
    return f"{Decimal(value).quantize(exponent, context=DECIMAL_CONTEXT):f}"


def scale_integer(raw: int, decimals: int) -> Decimal:
    return Decimal(raw).scaleb(-decimals, context=DECIMAL_CONTEXT)


def to_number(text) -> Decimal:
    """Numeric value of a display string; anything non-numeric counts as zero."""
    try:
        number = Decimal(str(text).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    return number if number.is_finite() else Decimal(0)


def format_amount_from_i128(value, decimals=None) -> str:
    raw = i128_to_int_flexible(value)
    if raw is None:
        return NOT_AVAILABLE
    places = safe_decimals(decimals)
    return format_fixed(scale_integer(raw, places), places)


def truncate_address(address, is_mobile: bool) -> str:
    if not address:
        return NOT_AVAILABLE
    if not is_mobile:
        return address
    return f"{address[:8]}...{address[-6:]}"


def is_multi_release_field(key) -> bool:
    # approved_flag is carried by single-release milestones as well
    if not isinstance(key, str):
        return False
    return key == 'amount' or (key.endswith('flag') and key != 'approved_flag')


# ---- main ----

def detect_escrow_type(data) -> str:
    """
    Infer the escrow type from the milestone shape.

    Multi-release iff at least one milestone map has an ``amount`` field or a
    per-milestone ``*flag`` field. The contract does not declare its type, so
    this is the single place that decides it.
    """
    milestones = find_entry(data, 'milestones')
    if not isinstance(milestones, VecValue):
        return SINGLE_RELEASE

    for item in milestones.items:
        if isinstance(item, MapValue) and any(is_multi_release_field(entry.key) for entry in item.entries):
            return MULTI_RELEASE
    return SINGLE_RELEASE


def extract_value(data, key: str, is_mobile: bool, is_address: bool = False) -> str:
    value = find_entry(data, key)
    if value is None:
        return NOT_AVAILABLE

    if isinstance(value, BoolValue):
        return "True" if value.value else "False"
    if isinstance(value, StringValue):
        return value.value
    if isinstance(value, AddressValue):
        return truncate_address(value.value, is_mobile) if is_address else value.value

    if isinstance(value, MapValue) and key == 'trustline':
        address = value.get('address')
        if isinstance(address, AddressValue):
            return address.value
        contract_id = value.get('contract_id')
        if isinstance(contract_id, StringValue):
            return contract_id.value
        return NOT_AVAILABLE

    if isinstance(value, I128Value):
        if key == 'platform_fee':
            basis_points = i128_to_int_flexible(value)
            if basis_points is None:
                return NOT_AVAILABLE
            return format_fixed(scale_integer(basis_points, 2), 2) + "%"
        return format_amount_from_i128(value, get_decimals_from_escrow_map(data))

    return NOT_AVAILABLE


def _bool_field(fields, *names) -> bool:
    for name in names:
        value = fields.get(name)
        if isinstance(value, BoolValue):
            return value.value
    return False


def _string_field(fields, name) -> Optional[str]:
    value = fields.get(name)
    if isinstance(value, StringValue) and value.value:
        return value.value
    return None


def _address_field(fields, name) -> Optional[str]:
    value = fields.get(name)
    return value.value if isinstance(value, AddressValue) else None


def extract_milestones(data, escrow_type: str) -> List[ParsedMilestone]:
    if data is None:
        return []

    milestones_entry = find_entry(data, 'milestones')
    if not isinstance(milestones_entry, VecValue):
        return []

    decimals = get_decimals_from_escrow_map(data)
    milestones = []

    for index, item in enumerate(milestones_entry.items):
        if not isinstance(item, MapValue):
            continue

        fields = {}
        for entry in item.entries:
            if entry.key:
                fields[entry.key] = entry.val

        default_label = f"Milestone {index + 1}"
        base = dict(
            id=index,
            title=_string_field(fields, 'title') or default_label,
            description=_string_field(fields, 'description') or default_label,
            status=_string_field(fields, 'status') or "pending",
            approved=_bool_field(fields, 'approved_flag', 'approved'),
        )

        if escrow_type == MULTI_RELEASE:
            amount = None
            if 'amount' in fields:
                scaled = format_amount_from_i128(fields['amount'], decimals)
                if scaled != NOT_AVAILABLE:
                    amount = format_fixed(Decimal(scaled), MILESTONE_AMOUNT_DISPLAY_PLACES)

            milestones.append(ParsedMilestone(
                **base,
                amount=amount,
                release_flag=_bool_field(fields, 'release_flag'),
                dispute_flag=_bool_field(fields, 'dispute_flag'),
                resolved_flag=_bool_field(fields, 'resolved_flag'),
                signer=_address_field(fields, 'signer'),
                approver=_address_field(fields, 'approver'),
                multi_release=True,
            ))
        else:
            milestones.append(ParsedMilestone(**base))

    return milestones


def calculate_progress(milestones) -> float:
    if not milestones:
        return 0
    completed = len([milestone for milestone in milestones if milestone.approved])
    return (completed / len(milestones)) * 100


def extract_roles(data, is_mobile: bool) -> Dict[str, str]:
    roles_entry = find_entry(data, 'roles')
    if not isinstance(roles_entry, MapValue):
        return {}

    roles = {}
    for entry in roles_entry.entries:
        if entry.key and isinstance(entry.val, AddressValue):
            roles[entry.key] = truncate_address(entry.val.value, is_mobile)
    return roles


def extract_flags(data) -> Dict[str, str]:
    flags = {
        'dispute_flag': NOT_AVAILABLE,
        'release_flag': NOT_AVAILABLE,
        'resolved_flag': NOT_AVAILABLE,
    }

    flags_entry = find_entry(data, 'flags')
    if not isinstance(flags_entry, MapValue):
        return flags

    for entry in flags_entry.entries:
        name = FLAG_ALIASES.get(entry.key)
        if name:
            is_set = isinstance(entry.val, BoolValue) and entry.val.value is True
            flags[name] = "True" if is_set else "False"
    return flags


def organize_escrow_data(escrow_data, contract_id: str, is_mobile: bool) -> Optional[OrganizedEscrowData]:
    """
    Build the display model for one escrow.

    Returns None only when ``escrow_data`` is None (escrow not found or not
    loaded). Amount is shown with 0 places, balance with 2 and milestone
    amounts with 2.
    """
    escrow_data = coerce_escrow_map(escrow_data)
    if escrow_data is None:
        return None

    decimals = safe_decimals(get_decimals_from_escrow_map(escrow_data))
    escrow_type = detect_escrow_type(escrow_data)
    milestones = extract_milestones(escrow_data, escrow_type)
    progress = calculate_progress(milestones)
    roles = extract_roles(escrow_data, is_mobile)
    flags = extract_flags(escrow_data)

    # Multi-release escrows are funded per milestone; their sum wins over the declared amount
    total_amount = extract_value(escrow_data, 'amount', is_mobile)
    if escrow_type == MULTI_RELEASE:
        milestone_sum = sum((to_number(m.amount) for m in milestones if m.amount is not None), Decimal(0))
        if milestone_sum > 0:
            total_amount = format_fixed(milestone_sum, decimals)

    balance = extract_value(escrow_data, 'balance', is_mobile)
    balance_raw = find_entry(escrow_data, 'balance')
    if isinstance(balance_raw, I128Value):
        raw = i128_to_int_flexible(balance_raw)
        balance = format_fixed(scale_integer(raw or 0, decimals), decimals)

    organized = OrganizedEscrowData(
        title=extract_value(escrow_data, 'title', is_mobile),
        description=extract_value(escrow_data, 'description', is_mobile),
        properties={
            'escrow_id': contract_id,
            'amount': format_fixed(to_number(total_amount), AMOUNT_DISPLAY_PLACES),
            'balance': format_fixed(to_number(balance), BALANCE_DISPLAY_PLACES),
            'platform_fee': extract_value(escrow_data, 'platform_fee', is_mobile),
            'engagement_id': extract_value(escrow_data, 'engagement_id', is_mobile),
            'trustline': extract_value(escrow_data, 'trustline', is_mobile),
        },
        roles=roles,
        flags=flags,
        milestones=milestones,
        progress=progress,
        escrow_type=escrow_type,
    )
    logger.debug(f"Organized escrow data for {contract_id}: {organized.escrow_type}, "
                 f"{len(milestones)} milestones, progress {progress}")
    return organized
