#!/usr/bin/env python3
"""cc-predict — forecast Claude Code usage at current pace.

Projects end-of-month totals from the last 14 days of activity:
  hours    — you (main session) + AI (subagents), so far and projected
  ghost    — days where AI worked and you didn't
  streak   — consecutive active days, and whether it survives the month
  autonomy — AI hours / your hours

Data source: cc-agent-load --json (npm i -g cc-agent-load)
Config:      ~/.claude/cc-predict.toml (optional)
"""

import sys, json, subprocess, calendar, math
from datetime import date, timedelta
from pathlib import Path

# ═══════════════════════ CONFIG ═══════════════════════

DEFAULT_CONFIG = Path("~/.claude/cc-predict.toml")
LOOKBACK_DAYS = 14
STREAK_THRESHOLD = 0.85     # Active fraction at which a streak "likely survives"
PROVIDER_TIMEOUT = 30       # Seconds per provider attempt
BAR_WIDTH = 10
SYM_BAR = ("█", "░")        # Confidence bar (filled, empty)
RATIO_CAP = 99              # Autonomy sentinel: AI activity, no human activity
RULE = "─" * 58

USAGE = """
  cc-predict — Forecast your Claude Code usage at current pace

  Usage:
    cc-predict
    cc-predict --json

  Shows:
    ▸ Projected end-of-month hours (you + AI)
    ▸ Ghost Day count by month end
    ▸ Streak forecast (will it survive the month?)
    ▸ Autonomy ratio trend
"""


def default_commands(home):
    """Provider invocations in fallback order: installed binary, then local checkout."""
    return [
        [str(home / "bin" / "cc-agent-load"), "--json"],
        ["node", str(home / "projects" / "cc-loop" / "cc-agent-load" / "cli.mjs"), "--json"],
    ]


def load_config(path=DEFAULT_CONFIG, home=None):
    """Build the run configuration: defaults overridden by optional TOML file."""
    home = home or Path.home()
    cfg = {
        "lookback_days": LOOKBACK_DAYS,
        "streak_threshold": STREAK_THRESHOLD,
        "timeout": PROVIDER_TIMEOUT,
        "commands": default_commands(home),
        "bar_width": BAR_WIDTH,
        "bar": SYM_BAR,
    }

    cfg_path = Path(expand_home(str(path), home))
    if not cfg_path.exists():
        return cfg

    try:
        try:
            import tomllib
        except ImportError:
            import tomli as tomllib  # type: ignore
        with open(cfg_path, "rb") as f:
            raw = tomllib.load(f)
    except (OSError, ValueError):
        return cfg

    fc = _table(raw, "forecast")
    if _positive(fc.get("lookback_days"), int):
        cfg["lookback_days"] = fc["lookback_days"]
    if _positive(fc.get("streak_threshold"), (int, float)):
        cfg["streak_threshold"] = float(fc["streak_threshold"])

    p = _table(raw, "provider")
    if _positive(p.get("timeout"), (int, float)):
        cfg["timeout"] = p["timeout"]
    cmds = p.get("commands")
    if isinstance(cmds, list) and cmds and all(
            isinstance(c, list) and c and all(isinstance(a, str) for a in c) for c in cmds):
        cfg["commands"] = [[expand_home(a, home) for a in c] for c in cmds]

    d = _table(raw, "display")
    if _positive(d.get("bar_width"), int):
        cfg["bar_width"] = d["bar_width"]
    bar = d.get("bar")
    if isinstance(bar, list) and len(bar) == 2 and all(isinstance(s, str) for s in bar):
        cfg["bar"] = tuple(bar)

    return cfg


def _table(raw, name):
    """TOML section as a dict; a scalar where a table belongs counts as missing."""
    t = raw.get(name)
    return t if isinstance(t, dict) else {}


def _positive(v, types):
    """Positive number of the given type(s). TOML booleans don't count."""
    return not isinstance(v, bool) and isinstance(v, types) and v > 0


def expand_home(arg, home):
    """Expand a leading ~ against the resolved home directory."""
    if arg == "~" or arg.startswith("~/"):
        return str(home) + arg[1:]
    return arg

# ═══════════════════════ ANSI ═══════════════════════

R  = "\033[0m"    # Reset
BD = "\033[1m"    # Bold
DM = "\033[2m"    # Dim
CY = "\033[96m"   # Cyan (you)
YL = "\033[93m"   # Yellow (AI)
GR = "\033[92m"   # Green
OR = "\033[33m"   # Orange

# ═══════════════════════ DATES ═══════════════════════

def local_today():
    return date.today()

def day_key(d):
    """Mapping key for a date: YYYY-MM-DD."""
    return d.isoformat()

def add_days(d, n):
    return d + timedelta(days=n)

def days_in_month(d):
    return calendar.monthrange(d.year, d.month)[1]

def month_start(d):
    return d.replace(day=1)

def day_of_month(d):
    return d.day

def round_half_up(x):
    """Round .5 away from zero for positive values (2.5 -> 3, not 2)."""
    return int(math.floor(x + 0.5))

# ═══════════════════════ DATA ═══════════════════════

def _num(v):
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return 0
    return v

def normalize(value):
    """Normalize a per-date record to (human, ai) hours.

    Object form {"main": h, "sub": a} carries both; the legacy bare number is
    AI hours only. Anything else is malformed and treated as absent (None).
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return 0, value
    if isinstance(value, dict):
        return _num(value.get("main")), _num(value.get("sub"))
    return None

def lookup(by_date, d):
    """Normalized record for date d, or None when absent/malformed."""
    return normalize(by_date.get(day_key(d)))

def _reject_constant(name):
    """NaN/Infinity aren't JSON; a document carrying them is unusable."""
    raise ValueError(f"non-finite number {name}")

def run_provider(cmd, timeout):
    """Run one provider command. Returns the parsed document or None."""
    try:
        r = subprocess.run(cmd, capture_output=True, text=True, errors="replace", timeout=timeout)
    except (OSError, subprocess.SubprocessError):
        return None
    if r.returncode != 0 or not r.stdout.strip():
        return None
    try:
        doc = json.loads(r.stdout, parse_constant=_reject_constant)
    except ValueError:
        return None
    if not isinstance(doc, dict) or not isinstance(doc.get("byDate"), dict):
        return None
    return doc

def load_data(cfg):
    """Try each configured provider command in order; first usable document wins."""
    for cmd in cfg["commands"]:
        doc = run_provider(cmd, cfg["timeout"])
        if doc is not None:
            return doc
    return None

# ═══════════════════════ FORECAST ═══════════════════════

def compute_baseline(by_date, today, lookback_days=LOOKBACK_DAYS):
    """Average rates over the lookback window ending yesterday.

    Averages divide by the whole window, so quiet days dilute them.
    """
    main_sum = sub_sum = 0
    active = ghost = 0
    for i in range(1, lookback_days + 1):
        rec = lookup(by_date, add_days(today, -i))
        if rec is None:
            continue
        m, s = rec
        if m > 0 or s > 0:
            active += 1
            main_sum += m
            sub_sum += s
        if m == 0 and s > 0:
            ghost += 1
    return {
        "avgMainPerDay": main_sum / lookback_days,
        "avgSubPerDay": sub_sum / lookback_days,
        "activePct": active / lookback_days,
        "ghostPct": ghost / active if active > 0 else 0,
        "lookbackDays": lookback_days,
    }

def compute_streak(by_date, today):
    """Consecutive active days ending today (or yesterday if today has no record).

    A missing day ends the streak just like a zero day.
    """
    d = today
    # Only an absent or malformed record moves the start back; a bare 0 is a zero day
    if lookup(by_date, d) is None:
        d = add_days(today, -1)
    streak = 0
    while True:
        rec = lookup(by_date, d)
        if rec is None or rec[0] + rec[1] == 0:
            return streak
        streak += 1
        d = add_days(d, -1)

def month_to_date(by_date, today):
    """Actual totals from the 1st of the month through today, inclusive."""
    main_h = sub_h = 0
    active = ghost = 0
    d = month_start(today)
    while d <= today:
        rec = lookup(by_date, d)
        if rec is not None:
            m, s = rec
            if m > 0 or s > 0:
                active += 1
                main_h += m
                sub_h += s
            if m == 0 and s > 0:
                ghost += 1
        d = add_days(d, 1)
    return {"mainH": main_h, "subH": sub_h, "activeDays": active, "ghostDays": ghost}

def remaining_days(today):
    return days_in_month(today) - day_of_month(today)

def autonomy_ratio(baseline):
    """AI hours / your hours. 99 when only AI was active, 0 when nothing was."""
    main, sub = baseline["avgMainPerDay"], baseline["avgSubPerDay"]
    if main > 0:
        return sub / main
    return RATIO_CAP if sub > 0 else 0

def streak_survives(baseline, threshold=STREAK_THRESHOLD):
    return baseline["activePct"] >= threshold

def project(baseline, mtd, streak, days_left):
    """Month-end totals: actuals so far plus baseline rates over remaining days."""
    active_pct = baseline["activePct"]
    return {
        "mainHours": mtd["mainH"] + baseline["avgMainPerDay"] * days_left,
        "subHours": mtd["subH"] + baseline["avgSubPerDay"] * days_left,
        "activeDays": mtd["activeDays"] + round_half_up(active_pct * days_left),
        # Ghost share applies only to the remaining days expected to be active
        "ghostDays": mtd["ghostDays"] + round_half_up(baseline["ghostPct"] * active_pct * days_left),
        "streak": streak + round_half_up(active_pct * days_left),
    }

def forecast(by_date, today, cfg):
    """Full forecast document for one run."""
    baseline = compute_baseline(by_date, today, cfg["lookback_days"])
    streak = compute_streak(by_date, today)
    mtd = month_to_date(by_date, today)
    days_left = remaining_days(today)
    return {
        "today": day_key(today),
        "daysRemaining": days_left,
        "baseline": baseline,
        "monthToDate": mtd,
        "projected": project(baseline, mtd, streak, days_left),
        "streak": streak,
    }

# ═══════════════════════ RENDER ═══════════════════════

def confidence_bar(active_pct, width=BAR_WIDTH, sym=SYM_BAR):
    """Bar filled to the active-day fraction; green >80%, yellow >50%, else orange."""
    f = max(0, min(width, round_half_up(active_pct * width)))
    col = GR if active_pct > 0.8 else YL if active_pct > 0.5 else OR
    return f"{col}{sym[0] * f}{DM}{sym[1] * (width - f)}{R}"

def fmt_ratio(ratio):
    return f"{ratio:.2f}x" if ratio < 50 else "very high"

def render_json(fc):
    """Structured output: plain JSON, no ANSI."""
    doc = {k: fc[k] for k in ("today", "daysRemaining", "baseline", "monthToDate", "projected")}
    return json.dumps(doc, indent=2, ensure_ascii=False)

def render_text(fc, cfg):
    """Colored multi-section report."""
    today = date.fromisoformat(fc["today"])
    b, mtd, pj = fc["baseline"], fc["monthToDate"], fc["projected"]
    streak = fc["streak"]
    pct = round_half_up(b["activePct"] * 100)
    survives = streak_survives(b, cfg["streak_threshold"])
    ratio = autonomy_ratio(b)
    n = b["lookbackDays"]

    out = [
        "",
        f"  {BD}cc-predict{R}  —  {today.strftime('%B')} forecast",
        f"  {DM}Based on your last {n} days · {fc['daysRemaining']} days remaining this month{R}",
        f"  {RULE}",
        "",
        f"  {BD}Hours this month{R}",
        f"  {DM}So far:{R}         {CY}{mtd['mainH']:.1f}h{R} you + {YL}{mtd['subH']:.1f}h{R} AI"
        f" = {BD}{mtd['mainH'] + mtd['subH']:.1f}h{R}",
        f"  {DM}At current pace:{R} {CY}{pj['mainHours']:.1f}h{R} you + {YL}{pj['subHours']:.1f}h{R} AI"
        f" = {BD}{pj['mainHours'] + pj['subHours']:.1f}h{R} projected",
        "",
        f"  {BD}Ghost Days{R}",
        f"  {DM}So far:{R}         {mtd['ghostDays']} days",
        f"  {DM}Month end:{R}      {YL}~{pj['ghostDays']} days{R} projected",
        "",
        f"  {BD}Streak{R}",
        f"  {DM}Current:{R}        {streak} days",
    ]
    if survives:
        out.append(f"  {DM}Forecast:{R}       {GR}Likely survives{R} ({pct}% daily consistency)")
        out.append(f"  {DM}Projected streak end of month:{R} {BD}~{pj['streak']} days{R}")
    else:
        out.append(f"  {DM}Forecast:{R}       {OR}At risk{R} ({pct}% daily consistency)")
    out += [
        "",
        f"  {BD}AI Autonomy{R}",
        f"  {DM}{n}-day avg:{R}     {YL}{fmt_ratio(ratio)}{R} (AI hours / your hours)",
    ]
    if ratio > 1.5:
        out.append(f"  {YL}  AI is running 1.5x more than you{R}")
    elif ratio > 1:
        out.append(f"  {YL}  AI is running more than you{R}")
    else:
        out.append(f"  {CY}  You're driving more than AI{R}")
    bar = confidence_bar(b["activePct"], cfg["bar_width"], cfg["bar"])
    out += [
        "",
        f"  {RULE}",
        f"  {DM}Confidence: {bar} {pct}% active days base rate{R}",
        f"  {DM}(higher confidence = more consistent your usage has been){R}",
        "",
    ]
    return "\n".join(out)

# ═══════════════════════ MAIN ═══════════════════════

def parse_args(argv):
    """Flags: --help/-h, --json. Anything else is ignored."""
    return {
        "help": "--help" in argv or "-h" in argv,
        "json": "--json" in argv,
    }

def main(argv=None):
    args = parse_args(sys.argv[1:] if argv is None else argv)
    if args["help"]:
        print(USAGE)
        return 0

    cfg = load_config()
    data = load_data(cfg)
    if data is None:
        print("Error: Could not load cc-agent-load data.", file=sys.stderr)
        print("Install: npm i -g cc-agent-load", file=sys.stderr)
        return 1

    fc = forecast(data["byDate"], local_today(), cfg)
    if args["json"]:
        print(render_json(fc))
    else:
        print(render_text(fc, cfg))
    return 0

if __name__ == "__main__":
    sys.exit(main())
