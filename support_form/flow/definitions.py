"""
Declarative questionnaire definitions.

A flow is an ordered list of field groups. Each group carries a visibility
predicate over the current answers and optionally a parent group; a group is
shown only while its parent is shown and its own predicate holds. The
controller walks these definitions, so adding a branch means adding a group
here, not another conditional in the controller.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from support_form.errors import FlowError
from support_form.flow import state_machine as sm
from support_form.flow.validators import IMAGE_CONTENT_TYPES, MEDIA_CONTENT_TYPES
from support_form.settings import settings

Answers = Dict[str, Any]

# Field validator keys (applied on submit)
V_EMAIL = "email"
V_WALLET = "wallet_address"


@dataclass(frozen=True)
class Choice:
    value: str
    label: str


@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    kind: str = sm.TEXT
    required: bool = True
    options: Tuple[Choice, ...] = ()
    max_length: Optional[int] = None
    validator: Optional[str] = None
    placeholder: str = ""
    accept: Tuple[str, ...] = ()
    max_bytes: int = 0
    multiple: bool = False

    def option_values(self) -> List[str]:
        return [c.value for c in self.options]


@dataclass(frozen=True)
class FieldGroup:
    key: str
    fields: Tuple[FormField, ...]
    when: Callable[[Answers], bool] = lambda a: True
    after: Optional[str] = None
    submit: bool = False


@dataclass(frozen=True)
class FlowDefinition:
    flow_id: str
    title: str
    mutation: str
    groups: Tuple[FieldGroup, ...]
    build_variables: Callable[[Answers, Dict[str, List[dict]]], Dict[str, Any]]
    file_encoding: str = "multipart"  # multipart | data_url
    resets: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    success_message: str = "Your support request has been submitted successfully!"

    def group(self, key: str) -> FieldGroup:
        for g in self.groups:
            if g.key == key:
                return g
        raise KeyError(key)

    def fields_named(self, name: str) -> List[FormField]:
        return [f for g in self.groups for f in g.fields if f.name == name]


def _eq(name: str, value: str) -> Callable[[Answers], bool]:
    return lambda a: (a.get(name) or "") == value


def _filled(*names: str) -> Callable[[Answers], bool]:
    return lambda a: all(str(a.get(n) or "").strip() != "" for n in names)


def _or_none(v):
    if isinstance(v, str):
        v = v.strip()
    return v if v not in ("", None) else None


def _yes_no(v) -> Optional[bool]:
    if v == "yes":
        return True
    if v == "no":
        return False
    return None


YES_NO = (Choice("yes", "Yes"), Choice("no", "No"))
MOBILE_DESKTOP = (Choice("mobile", "Mobile"), Choice("desktop", "Desktop"))


def _text(name, label, placeholder="", **kw) -> FormField:
    return FormField(name=name, label=label, kind=sm.TEXT, placeholder=placeholder, **kw)


def _email(name, label="Email", placeholder="Enter your email") -> FormField:
    return FormField(name=name, label=label, kind=sm.EMAIL, placeholder=placeholder, validator=V_EMAIL)


def _wallet(name, label="Wallet Address", placeholder="e.g., 0x123...abc") -> FormField:
    return FormField(name=name, label=label, kind=sm.TEXT, placeholder=placeholder, validator=V_WALLET)


def _textarea(name, label, max_length, placeholder="") -> FormField:
    return FormField(name=name, label=label, kind=sm.TEXTAREA, max_length=max_length, placeholder=placeholder)


def _select(name, label, options) -> FormField:
    return FormField(name=name, label=label, kind=sm.SELECT, options=tuple(options))


def _screenshot(name, label="Attach Screenshot (Max 8MB, optional)") -> FormField:
    return FormField(
        name=name,
        label=label,
        kind=sm.FILE,
        required=False,
        accept=IMAGE_CONTENT_TYPES,
        max_bytes=settings.ATTACHMENT_MAX_BYTES,
    )


# ---------------------------------------------------------------------------
# support: single-page form keyed on the type of issue
# ---------------------------------------------------------------------------

ISSUE_WALLET = "wallet-issues"
ISSUE_TRANSACTION = "transaction-problems"
ISSUE_DEVELOPER = "developer-support"
ISSUE_OTHER = "other"

_ATTACHMENTS = FormField(
    name="attachments",
    label="Attach Files (Screenshots, Videos)",
    kind=sm.FILE,
    required=False,
    accept=MEDIA_CONTENT_TYPES,
    max_bytes=settings.UPLOAD_MAX_FILE_BYTES,
    multiple=True,
)

_ERROR_CODE = _text("errorCode", "Error Code", "Paste the error code if available")

SUPPORT_INPUT_FIELDS = (
    "name",
    "email",
    "typeOfIssue",
    "walletServiceProvider",
    "transactionHash",
    "integrationDetails",
    "walletAddress",
    "tokenInvolved",
    "marketInvolved",
    "functionInvolved",
    "errorCode",
    "otherDetails",
    "mobileOrDesktop",
)


def _support_variables(answers: Answers, files: Dict[str, List[dict]]) -> Dict[str, Any]:
    data = {k: _or_none(answers.get(k)) for k in SUPPORT_INPUT_FIELDS}
    data["files"] = list(files.get("attachments") or [])
    return {"input": data}


SUPPORT_FLOW = FlowDefinition(
    flow_id="support",
    title="Support Request",
    mutation="uploadSupportRequest",
    file_encoding="multipart",
    groups=(
        FieldGroup(
            key="contact",
            fields=(
                _text("name", "Name", "Enter your name"),
                _email("email"),
                _select("typeOfIssue", "What Type of Issue Are You Experiencing?", (
                    Choice(ISSUE_WALLET, "Wallet and Connection Issues"),
                    Choice(ISSUE_TRANSACTION, "Transaction Problems"),
                    Choice(ISSUE_DEVELOPER, "Developer or Integration Support"),
                    Choice(ISSUE_OTHER, "Other"),
                )),
            ),
        ),
        FieldGroup(
            key="wallet",
            after="contact",
            when=_eq("typeOfIssue", ISSUE_WALLET),
            submit=True,
            fields=(
                _text("walletServiceProvider", "Wallet Service Provider", "e.g., MetaMask, Ledger, etc."),
                _select("mobileOrDesktop", "Are you using Mobile or Desktop?", MOBILE_DESKTOP),
                _ATTACHMENTS,
            ),
        ),
        FieldGroup(
            key="transaction",
            after="contact",
            when=_eq("typeOfIssue", ISSUE_TRANSACTION),
            submit=True,
            fields=(
                _wallet("walletAddress"),
                _text("tokenInvolved", "Token Involved", "e.g., USDC, ETH, etc."),
                _text("marketInvolved", "Market Involved", "e.g., Ethereum v3, Ethereum v2, etc."),
                _text("functionInvolved", "Function Involved", "e.g., Supply, Borrow, etc."),
                _ERROR_CODE,
                _ATTACHMENTS,
            ),
        ),
        FieldGroup(
            key="developer",
            after="contact",
            when=_eq("typeOfIssue", ISSUE_DEVELOPER),
            submit=True,
            fields=(
                _text("integrationDetails", "Details", "Please describe your inquiry"),
                _ATTACHMENTS,
            ),
        ),
        FieldGroup(
            key="other",
            after="contact",
            when=_eq("typeOfIssue", ISSUE_OTHER),
            submit=True,
            fields=(
                _text("otherDetails", "Please Describe Your Issue", "Describe your issue in detail"),
                _ERROR_CODE,
                _ATTACHMENTS,
            ),
        ),
    ),
    build_variables=_support_variables,
    success_message=(
        "Your support request has been submitted successfully! "
        f"We will email you via {settings.SUPPORT_CONTACT_EMAIL}."
    ),
)


# ---------------------------------------------------------------------------
# advanced: branching questionnaire
# ---------------------------------------------------------------------------

UI_DISPLAY = "UI Display Issue"
TOKEN_SWAP = "Token Swapping / Debt Repayment"
WALLET_CONNECTION = "Wallet Connection"

ADVANCED_FILE_FIELDS = (
    "proposalFile",
    "tokenIssueFile",
    "uiIssueFile",
    "tokenSwapFile",
    "clearedCacheFile",
    "walletConnectionFile",
)

_NAME = _text("name", "Name")
_EMAIL = _email("email", placeholder="")
_WALLET = _wallet("walletAddress", placeholder="")


def _advanced_variables(answers: Answers, files: Dict[str, List[dict]]) -> Dict[str, Any]:
    a = answers
    issue = a.get("issueType")

    if issue == UI_DISPLAY:
        name, email = a.get("uiIssueName"), a.get("uiIssueEmail")
    elif issue == TOKEN_SWAP:
        name, email = a.get("tokenSwapName"), a.get("tokenSwapEmail")
    else:
        name, email = a.get("name"), a.get("email")

    wallet = a.get("tokenSwapWalletAddress") if issue == TOKEN_SWAP else a.get("walletAddress")

    if a.get("initialQuestion") == "yes":
        description = a.get("issueDescription")
    elif issue == UI_DISPLAY:
        description = a.get("uiIssueDescription")
    elif issue == TOKEN_SWAP:
        description = a.get("tokenSwapIssueDescription")
    elif issue == WALLET_CONNECTION:
        description = a.get("mobileIssueDescription") or a.get("clearedCacheIssueDescription")
    else:
        description = None

    browser = a.get("uiIssueBrowser") if issue == UI_DISPLAY else a.get("desktopBrowser")

    variables = {
        "name": _or_none(name),
        "email": _or_none(email),
        "company": _or_none(a.get("company")),
        "walletAddress": _or_none(wallet),
        "token": _or_none(a.get("tokenSwapToken")),
        "tokenAmount": _or_none(a.get("tokenAmount")),
        "chain": _or_none(a.get("tokenSwapChain")),
        "helpOption": _or_none(a.get("helpOption")),
        "issueDescription": _or_none(description),
        "errorCode": _or_none(a.get("tokenSwapErrorCode")),
        "browser": _or_none(browser),
        "walletProvider": _or_none(a.get("desktopWalletProvider")),
        "walletApp": _or_none(a.get("mobileWalletApp")),
        "multipleExtensions": _yes_no(a.get("multipleExtensions")),
        "clearedCache": _yes_no(a.get("clearedCache")),
    }
    for f in ADVANCED_FILE_FIELDS:
        stored = files.get(f) or []
        variables[f] = stored[0] if stored else None
    return variables


ADVANCED_FLOW = FlowDefinition(
    flow_id="advanced",
    title="Contact Support",
    mutation="createSupportRequest",
    file_encoding="data_url",
    groups=(
        FieldGroup(
            key="initial",
            fields=(_select("initialQuestion", "Is this a partnership or integration request?", YES_NO),),
        ),
        # Partnership / integration request
        FieldGroup(
            key="partnership",
            after="initial",
            when=_eq("initialQuestion", "yes"),
            fields=(_NAME, _EMAIL, _text("company", "Company You Represent")),
        ),
        FieldGroup(
            key="proposal",
            after="partnership",
            when=_filled("name", "email", "company"),
            submit=True,
            fields=(
                _textarea("issueDescription", "Please describe your proposal (4096 characters max)", 4096),
                _screenshot("proposalFile", "Attach Supporting Document (Max 8MB, optional)"),
            ),
        ),
        FieldGroup(
            key="token_access",
            after="initial",
            when=_eq("initialQuestion", "no"),
            fields=(_select("tokenIssue", "Are you having issues accessing your tokens?", YES_NO),),
        ),
        FieldGroup(
            key="token_issue",
            after="token_access",
            when=_eq("tokenIssue", "yes"),
            submit=True,
            fields=(_NAME, _EMAIL, _WALLET, _screenshot("tokenIssueFile")),
        ),
        FieldGroup(
            key="issue_type",
            after="token_access",
            when=_eq("tokenIssue", "no"),
            fields=(
                _select("issueType", "What issue are you experiencing?", (
                    Choice(UI_DISPLAY, UI_DISPLAY),
                    Choice(TOKEN_SWAP, TOKEN_SWAP),
                    Choice(WALLET_CONNECTION, WALLET_CONNECTION),
                )),
            ),
        ),
        # UI display issue
        FieldGroup(
            key="ui_contact",
            after="issue_type",
            when=_eq("issueType", UI_DISPLAY),
            fields=(
                _text("uiIssueName", "Name"),
                _email("uiIssueEmail", placeholder=""),
                _text("uiIssueBrowser", "Browser"),
            ),
        ),
        FieldGroup(
            key="ui_details",
            after="ui_contact",
            when=_filled("uiIssueName", "uiIssueEmail", "uiIssueBrowser"),
            submit=True,
            fields=(
                _textarea("uiIssueDescription", "Please describe your issue (512 characters max)", 512),
                _screenshot("uiIssueFile"),
            ),
        ),
        # Token swapping / debt repayment
        FieldGroup(
            key="swap_contact",
            after="issue_type",
            when=_eq("issueType", TOKEN_SWAP),
            fields=(
                _text("tokenSwapName", "Name"),
                _email("tokenSwapEmail", placeholder=""),
                _wallet("tokenSwapWalletAddress", placeholder=""),
            ),
        ),
        FieldGroup(
            key="swap_token",
            after="swap_contact",
            when=_filled("tokenSwapName", "tokenSwapEmail", "tokenSwapWalletAddress"),
            fields=(
                _text("tokenSwapToken", "Token Affected"),
                _text("tokenSwapChain", "Blockchain Network"),
            ),
        ),
        FieldGroup(
            key="swap_details",
            after="swap_token",
            when=_filled("tokenSwapToken", "tokenSwapChain"),
            submit=True,
            fields=(
                _textarea("tokenSwapIssueDescription", "Please describe your issue (512 characters max)", 512),
                _textarea(
                    "tokenSwapErrorCode",
                    "Please paste the full error code here (16384 characters max)",
                    16384,
                ),
                _screenshot("tokenSwapFile"),
            ),
        ),
        # Wallet connection
        FieldGroup(
            key="wallet_contact",
            after="issue_type",
            when=_eq("issueType", WALLET_CONNECTION),
            fields=(_NAME, _EMAIL, _WALLET),
        ),
        FieldGroup(
            key="wallet_platform",
            after="wallet_contact",
            when=_filled("name", "email", "walletAddress"),
            fields=(_select("mobileOrDesktop", "Are you on mobile or desktop?", MOBILE_DESKTOP),),
        ),
        FieldGroup(
            key="wallet_mobile",
            after="wallet_platform",
            when=_eq("mobileOrDesktop", "mobile"),
            submit=True,
            fields=(
                _text("mobileWalletApp", "Wallet App"),
                _textarea("mobileIssueDescription", "Please describe your issue (256 characters max)", 256),
                _screenshot("walletConnectionFile"),
            ),
        ),
        FieldGroup(
            key="wallet_desktop",
            after="wallet_platform",
            when=_eq("mobileOrDesktop", "desktop"),
            fields=(
                _text("desktopWalletProvider", "Wallet Provider"),
                _text("desktopBrowser", "Browser"),
            ),
        ),
        FieldGroup(
            key="wallet_extensions",
            after="wallet_desktop",
            when=_filled("desktopWalletProvider", "desktopBrowser"),
            fields=(_select("multipleExtensions", "Do you have multiple wallet extensions enabled?", YES_NO),),
        ),
        FieldGroup(
            key="wallet_cache",
            after="wallet_extensions",
            when=_filled("multipleExtensions"),
            fields=(_select("clearedCache", "Did you attempt clearing browser cache and cookies?", YES_NO),),
        ),
        FieldGroup(
            key="wallet_details",
            after="wallet_cache",
            when=_filled("clearedCache"),
            submit=True,
            fields=(
                _textarea("clearedCacheIssueDescription", "Please describe your issue (512 characters max)", 512),
                _screenshot("clearedCacheFile"),
            ),
        ),
    ),
    resets={
        "initialQuestion": ("tokenIssue", "helpOption", "mobileOrDesktop", "issueType"),
        "tokenIssue": ("helpOption", "mobileOrDesktop", "issueType"),
        "issueType": ("mobileOrDesktop",),
    },
    build_variables=_advanced_variables,
)


FLOWS: Dict[str, FlowDefinition] = {
    SUPPORT_FLOW.flow_id: SUPPORT_FLOW,
    ADVANCED_FLOW.flow_id: ADVANCED_FLOW,
}


def get_flow(flow_id: str) -> FlowDefinition:
    try:
        return FLOWS[flow_id]
    except KeyError:
        raise FlowError(f"Unknown flow: {flow_id}")
