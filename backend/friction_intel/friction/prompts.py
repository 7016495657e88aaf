MAX_CASE_CHARS = 2000
TRUNCATION_NOTE = "\n[Case text truncated for analysis]"

CLASSIFICATION_PROMPT = """Analyze this support case and respond with ONLY valid JSON (no markdown):

{case_text}

Return a single JSON object with these fields:

FIRST, determine if this is actual FRICTION or routine support:

is_friction: true/false - BE STRICT! Only mark as TRUE if it's a systemic product/UX problem.

TRUE = Product Friction (systemic issues requiring engineering/design fixes):
  - Bugs, errors, system failures, crashes
  - Features that don't work as expected or are broken
  - Confusing UI/UX that blocks user workflows
  - Performance problems (slowness, timeouts, lag)
  - Integration failures, API errors, sync issues
  - Missing critical functionality that blocks workflows
  - Data quality issues caused by the system
  - Billing system problems or payment processing errors

FALSE = Normal Support (routine requests that don't need product fixes):
  - Auto-replies, out-of-office messages
  - Transactional requests: "change my email", "update address", "reset password"
  - Onboarding tasks: "add new location", "setup new user", "configure settings"
  - How-to questions easily answered by documentation
  - Feature requests without demonstrated pain/blocking issues
  - Positive feedback or thank-you messages
  - Account cancellations or service changes
  - Questions about how existing features work (unless user is confused because UI is unclear)

If is_friction is FALSE, return: {{"is_friction": false, "summary": "brief 1-sentence description", "reason": "why it's not friction"}}

If is_friction is TRUE, continue with full analysis:
- summary: Brief description of the issue (1 sentence)
- theme_key: Choose the MOST SPECIFIC theme. "other" should be RARE:
  * billing_confusion: Invoice, payment, pricing, subscription issues
  * integration_failures: API issues, third-party app connections, data sync problems
  * ui_confusion: Interface unclear, hard to find features, confusing workflow
  * performance_issues: Slow load times, timeouts, system lag
  * missing_features: Requested functionality doesn't exist
  * training_gaps: User doesn't know how to use existing features
  * support_response_time: Complaints about support speed or quality
  * data_quality: Incorrect data, missing data, data inconsistencies
  * reporting_issues: Problems with reports, exports, analytics
  * access_permissions: User access, role permissions, login issues
  * configuration_problems: Settings not working, setup issues
  * notification_issues: Email alerts, in-app notifications problems
  * workflow_inefficiency: Process is too complex or time-consuming
  * mobile_issues: Mobile app or mobile web problems
  * documentation_gaps: Help docs missing, outdated, or unclear
  * other: ONLY if absolutely none of the above apply (should be rare)
- severity: 1-5 (1=minor inconvenience, 5=critical blocker)
- sentiment: frustrated, confused, angry, neutral, satisfied
- root_cause: Your hypothesis about the underlying cause
- evidence: Array of max 2 short quotes from the case that support your analysis"""


def prepare_case_text(text: str | None) -> str:
    """Cap case text at MAX_CASE_CHARS, flagging the cut so the model knows."""
    text = text or ""
    if len(text) <= MAX_CASE_CHARS:
        return text
    return text[:MAX_CASE_CHARS] + TRUNCATION_NOTE


def build_classification_prompt(case_text: str | None) -> str:
    return CLASSIFICATION_PROMPT.format(case_text=prepare_case_text(case_text))
