"""Turns a Node.js function into an application served by worker.js."""

import json

from bpengine import Attribution, LayerFlag, UserError, InternalError, version
from bpengine import opt_in_env_set, opt_out_env_not_set

LAYER_NAME = "legacy-worker"
FUNCTION_TARGET = "FUNCTION_TARGET"
FUNCTION_SOURCE = "FUNCTION_SOURCE"
FUNCTION_SIGNATURE_TYPE = "FUNCTION_SIGNATURE_TYPE"


def detect(ctx):
    if ctx.has_env(FUNCTION_TARGET):
        return opt_in_env_set(FUNCTION_TARGET)
    return opt_out_env_not_set(FUNCTION_TARGET)


def _read_package_json(ctx):
    try:
        return json.loads((ctx.application_root / "package.json").read_text())
    except ValueError as e:
        raise UserError(f"parsing package.json: {e}")


def _install_worker(ctx, layer):
    ctx.logf("Configuring the legacy Google Cloud Functions worker.js.")
    converter = ctx.buildpack_root / "converter" / "worker"
    pjs = converter / "package.json"
    wjs = converter / "worker.js"

    if ctx.check_cache(layer, ["production"], [pjs, wjs]):
        ctx.cache_hit(LAYER_NAME)
        return
    ctx.cache_miss(LAYER_NAME)
    ctx.clear_layer(layer)

    install = "ci" if ctx.file_exists("package-lock.json") else "install"
    ctx.exec(["cp", "-t", str(layer.path), str(pjs), str(wjs)], Attribution.USER_TIMING, check=True)
    ctx.exec(["npm", install, "--quiet", "--production", "--prefix", str(layer.path)], Attribution.USER, check=True)


def build(ctx):
    if ctx.has_env(FUNCTION_SOURCE):
        raise UserError(f"{FUNCTION_SOURCE} is not currently supported for Node.js buildpacks")

    fn_file = "index.js" if ctx.file_exists("index.js") else "function.js"
    manifest = None
    if ctx.file_exists("package.json"):
        manifest = _read_package_json(ctx)
        fn_file = manifest.get("main") or fn_file
    if not ctx.file_exists(fn_file):
        raise UserError(f"{fn_file} does not exist")

    requested = version.NODEJS.resolve(ctx.env, manifest)
    if requested:
        ctx.logf("Requested Node.js version %s", requested)

    ctx.exec(["node", "--check", fn_file], Attribution.USER, check=True)

    layer = ctx.layer(LAYER_NAME, LayerFlag.BUILD, LayerFlag.CACHE, LayerFlag.LAUNCH)
    _install_worker(ctx, layer)

    if ctx.file_exists("node_modules"):
        layer.launch_env.prepend("NODE_PATH", ":", str(ctx.application_root / "node_modules"))
    target = ctx.getenv(FUNCTION_TARGET)
    if not target:
        ctx.exit(1, InternalError(f"required env var {FUNCTION_TARGET} not found"))
    layer.launch_env.default("X_GOOGLE_FUNCTION_NAME", target)
    layer.launch_env.default("X_GOOGLE_ENTRY_POINT", target)
    if ctx.has_env(FUNCTION_SIGNATURE_TYPE):
        signature = ctx.getenv(FUNCTION_SIGNATURE_TYPE)
        layer.launch_env.default("X_GOOGLE_FUNCTION_TRIGGER_TYPE", "HTTP_TRIGGER" if signature == "http" else signature)
    layer.launch_env.default("X_GOOGLE_CODE_LOCATION", str(ctx.application_root))
    layer.launch_env.default("X_GOOGLE_WORKER_PORT", 8091)
    layer.launch_env.default("WORKER_PORT", 8091)

    ctx.add_web_process(["node", str(layer.path / "worker.js")])
