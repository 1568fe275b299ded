"""Pure business rules: pricing, calendars, settlement outcomes and record drafts."""
