"""reqr CLI - send one HTTP request and render the response."""

import logging
import sys

import click

from reqr import __version__

TOOL_HELP = """\
reqr — REQuesteR, a small command-line HTTP client.

Builds one request from repeatable NAME VALUE flags, sends it, and prints
the response: JSON is pretty-printed, known types are syntax highlighted,
anything else is printed as text.

\b
EXAMPLES
────────
  reqr api.example.com/items -Q page 1
  reqr httpbin.org/post -B name test -B email a@b.com
  reqr httpbin.org/post --form -B name test
  reqr -m PUT https://api.example.com/items/1 -H Authorization "Bearer x" -B name new
  reqr example.com/logo.png -o logo.png

\b
METHOD
──────
  -m/--method wins when given. Otherwise any -B field (or --json/--form)
  means POST, and everything else is GET. GET and DELETE refuse -B fields.

\b
BODY
────
  -B fields are sent as a JSON object of strings by default (a repeated
  name keeps its last value), or as application/x-www-form-urlencoded with
  --form (repeated names are all sent). A Content-Type header is added
  unless you pass one with -H.

\b
OUTPUT
──────
  STATUS: 200 OK  GET http://api.example.com/items?page=1
  <body>

  -o/--output writes the exact body bytes to a file instead.
  --verbose adds elapsed time and response headers.

\b
CONFIG FILE FORMAT (.reqr.yaml)
───────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .reqr.yaml / .reqr.yml / reqr.yaml / reqr.yml in CWD
    3. ~/.reqr/config.yaml (global)

  \b
  defaults:
    timeout: 30                     # seconds
    style: monokai                  # Pygments style
    verify: true                    # TLS certificate verification
    env_file: .env                  # load .env file

  REQR_TIMEOUT, REQR_STYLE and REQR_VERIFY override the file.
"""


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.argument("url", required=False)
@click.option(
    "-m",
    "--method",
    type=click.Choice(["GET", "POST", "PUT", "DELETE"], case_sensitive=False),
    default=None,
    help="HTTP method. Default: POST with body fields, GET otherwise.",
)
@click.option(
    "-Q",
    "--query",
    nargs=2,
    multiple=True,
    metavar="NAME VALUE",
    help="Query parameter. Repeatable.",
)
@click.option(
    "-H",
    "--header",
    nargs=2,
    multiple=True,
    metavar="NAME VALUE",
    help="Request header. Repeatable.",
)
@click.option(
    "-B",
    "--body",
    nargs=2,
    multiple=True,
    metavar="NAME VALUE",
    help="Body field. Repeatable.",
)
@click.option(
    "--json",
    "json_flag",
    is_flag=True,
    default=False,
    help="Encode body fields as a JSON object (default).",
)
@click.option(
    "--form",
    "form_flag",
    is_flag=True,
    default=False,
    help="Encode body fields as application/x-www-form-urlencoded.",
)
@click.option(
    "-o",
    "--output",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the raw response body to this file.",
)
@click.option(
    "--timeout",
    type=int,
    default=None,
    help="Request timeout in seconds. Default: 30.",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Include elapsed time and response headers in output.",
)
@click.option(
    "--color/--no-color",
    default=None,
    help="Force or disable syntax highlighting. Default: on for terminals.",
)
@click.option("--style", default=None, help="Pygments style for highlighting.")
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .reqr.yaml in CWD, then ~/.reqr/config.yaml.",
)
@click.option("--debug", is_flag=True, default=False, help="Log debug output to stderr.")
@click.version_option(__version__, prog_name="reqr")
def main(
    url,
    method,
    query,
    header,
    body,
    json_flag,
    form_flag,
    output,
    timeout,
    verbose,
    color,
    style,
    config_file,
    debug,
):
    """Send one HTTP request and render the response."""
    from reqr.core import (
        ReqrError,
        load_config,
        load_env,
        resolve_config_path,
        resolve_settings,
    )
    from reqr.executor import execute_request

    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )

    if not url:
        ctx = click.get_current_context()
        click.echo(ctx.get_help())
        ctx.exit(1)

    # --- Validate mutually exclusive options ---
    if json_flag and form_flag:
        click.echo("ERROR: --json and --form are mutually exclusive.", err=True)
        sys.exit(1)

    # --- Load config ---
    config_path = resolve_config_path(config_file)
    try:
        config = load_config(config_path)
        env = load_env(
            config["defaults"].get("env_file"),
            base_dir=config["_config_dir"] or ".",
        )
        settings = resolve_settings(config, env, timeout=timeout, style=style)
    except ReqrError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    if color is None:
        color = click.get_text_stream("stdout").isatty()

    ok = run_request(
        url,
        method=method,
        query=_flatten(query),
        header=_flatten(header),
        body=_flatten(body),
        json_flag=json_flag,
        form_flag=form_flag,
        output=output,
        settings=settings,
        color=color,
        verbose=verbose,
        execute_request=execute_request,
    )
    if not ok:
        sys.exit(1)


def run_request(
    url,
    method=None,
    query=None,
    header=None,
    body=None,
    json_flag=False,
    form_flag=False,
    output=None,
    settings=None,
    color=False,
    verbose=False,
    execute_request=None,
) -> bool:
    """Resolve, send and render one request.

    query/header/body are flat NAME, VALUE, NAME, VALUE sequences. Returns
    True on success; on failure prints one ERROR line and returns False.
    """
    from reqr.core import (
        ReqrError,
        body_format_from_flags,
        pairs_from_flat,
        resolve_request,
        resolve_settings,
    )
    from reqr.render import HighlighterContext, render_response

    if execute_request is None:
        from reqr.executor import execute_request
    if settings is None:
        settings = resolve_settings({}, {})

    try:
        spec = resolve_request(
            url,
            query=pairs_from_flat(query),
            headers=pairs_from_flat(header),
            body=pairs_from_flat(body),
            method=method,
            body_format=body_format_from_flags(json_flag, form_flag),
        )
        response = execute_request(
            spec,
            timeout=settings["timeout"],
            verify=settings["verify"],
        )
        context = HighlighterContext(settings["style"]) if color else None
        render_response(
            response,
            spec,
            output_path=output,
            context=context,
            verbose=verbose,
        )
    except ReqrError as e:
        click.echo(f"ERROR: {e}", err=True)
        return False
    return True


# ── Helpers ──────────────────────────────────────────────────────────────


def _flatten(pair_tuples):
    """Flatten click's ((name, value), ...) into [name, value, ...]."""
    return [item for pair in pair_tuples for item in pair]
