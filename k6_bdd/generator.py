"""Generate a k6 script for each resolved scenario.

A scenario is first compiled to a `ScriptModel`, every step matched against the step registry, imports,
metrics, thresholds and setup code collected. The model is then rendered with the `script.js.j2` template.
Apart from the generation timestamp in the header, the same input always renders the same script.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from k6_bdd import STATIC_CONTEXT
from k6_bdd.configuration import DEFAULT_LIBRARY_DIR, DEFAULT_OUTPUT_DIR, DEFAULT_REPORT_DIR, library_import_path
from k6_bdd.exceptions import GenerationIOError, UnrecognizedStepError
from k6_bdd.profile import derive_load_profile
from k6_bdd.steps import Metric, default_registry, js_string
from k6_bdd.utils import slugify

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable

    from k6_bdd.model import Feature, ResolvedScenario, Step
    from k6_bdd.profile import LoadProfile
    from k6_bdd.steps import StepRegistry

logger = logging.getLogger('k6-bdd.generator')

SCRIPT_TEMPLATE = 'script.js.j2'

SCENARIO_KEY_LENGTH = 40

# symbols exported by each module in the helper library, in the order they are imported
LIBRARY_EXPORTS: dict[str, tuple[str, ...]] = {
    'config': ('BASE_URL', 'USERNAME', 'PASSWORD'),
    'auth': ('login', 'logout', 'getAuthHeaders'),
    'endpoints': (
        'getProducts',
        'createProduct',
        'updateProduct',
        'getUsers',
        'createUser',
        'createOrder',
        'getOrders',
    ),
    'helpers': (
        'checkResponse',
        'parseResponse',
        'randomItem',
        'randomInt',
        'generateEmail',
        'generateUserName',
        'generateSku',
        'generateProductName',
        'randomThinkTime',
        'getTimestamp',
    ),
}

ALWAYS_IMPORTED = ('BASE_URL', 'getTimestamp')

HTML_REPORT_URL = 'https://raw.githubusercontent.com/benc-uk/k6-reporter/main/dist/bundle.js'
TEXT_SUMMARY_URL = 'https://jslib.k6.io/k6-summary/0.1.0/index.js'


def jinja2_environment_factory() -> Environment:
    environment = Environment(
        autoescape=False,
        loader=FileSystemLoader(STATIC_CONTEXT),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    environment.filters['js'] = js_string

    return environment


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(timestamp: datetime) -> str:
    return timestamp.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def scenario_key(name: str) -> str:
    return slugify(name, '_')[:SCENARIO_KEY_LENGTH]


@dataclass(frozen=True)
class ImportStatement:
    module: str
    symbols: tuple[str, ...] = ()
    default: str | None = None

    def __str__(self) -> str:
        if self.default is not None:
            return f"import {self.default} from '{self.module}';"

        return f"import {{ {', '.join(self.symbols)} }} from '{self.module}';"


@dataclass(frozen=True)
class StepBlock:
    keyword: str
    text: str
    code: str
    recognized: bool = True

    @property
    def label(self) -> str:
        return f'{self.keyword} {self.text}'


@dataclass
class ScriptModel:
    feature_name: str
    scenario_name: str
    examples_name: str | None
    parameters: dict[str, str]
    generated_at: str
    load_profile: LoadProfile
    report_dir: str
    library_path: str
    imports: list[ImportStatement] = field(default_factory=list)
    metrics: list[Metric] = field(default_factory=list)
    thresholds: dict[str, list[str]] = field(default_factory=dict)
    setup: str | None = None
    blocks: list[StepBlock] = field(default_factory=list)
    unrecognized: list[UnrecognizedStepError] = field(default_factory=list)

    @property
    def report_name(self) -> str:
        return slugify(self.scenario_name)

    @property
    def data_argument(self) -> str:
        return 'data' if self.setup is not None else ''

    @property
    def parameters_json(self) -> str:
        return json.dumps(self.parameters, ensure_ascii=False)

    @property
    def options(self) -> dict[str, Any]:
        options = self.load_profile.to_options(scenario_key(self.scenario_name))
        if len(self.thresholds) > 0:
            options['thresholds'] = {metric: list(rules) for metric, rules in self.thresholds.items()}

        return options

    @property
    def options_json(self) -> str:
        return json.dumps(self.options, indent=4, ensure_ascii=False)


@dataclass(frozen=True)
class GeneratedScript:
    feature_name: str
    scenario_name: str
    path: Path
    source: str
    load_profile: LoadProfile
    unrecognized_steps: tuple[UnrecognizedStepError, ...] = ()


class ScriptGenerator:
    registry: StepRegistry
    output_dir: Path
    library_dir: Path
    report_dir: str

    def __init__(
        self,
        registry: StepRegistry | None = None,
        output_dir: Path | None = None,
        library_dir: Path | None = None,
        report_dir: str = DEFAULT_REPORT_DIR,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.output_dir = output_dir if output_dir is not None else Path(DEFAULT_OUTPUT_DIR)
        self.library_dir = library_dir if library_dir is not None else Path(DEFAULT_LIBRARY_DIR)
        self.report_dir = report_dir
        self.clock = clock
        self.environment = jinja2_environment_factory()

    def _compile_imports(self, symbols: list[str], metrics: list[Metric], library_path: str) -> list[ImportStatement]:
        imports = [
            ImportStatement('k6', ('sleep', 'group')),
            ImportStatement('k6/http', default='http'),
            ImportStatement('k6', ('check',)),
        ]

        metric_kinds = list(dict.fromkeys(metric.kind.value for metric in metrics))
        if len(metric_kinds) > 0:
            imports.append(ImportStatement('k6/metrics', tuple(metric_kinds)))

        required = {*symbols, *ALWAYS_IMPORTED}

        for module, exports in LIBRARY_EXPORTS.items():
            module_symbols = tuple(symbol for symbol in exports if symbol in required)
            if len(module_symbols) > 0:
                imports.append(ImportStatement(f'{library_path}/{module}.js', module_symbols))

        unknown_symbols = [symbol for symbol in symbols if not any(symbol in exports for exports in LIBRARY_EXPORTS.values())]
        for symbol in unknown_symbols:
            logger.warning('%s is not exported by the helper library, it will not be imported', symbol)

        imports.extend(
            [
                ImportStatement(HTML_REPORT_URL, ('htmlReport',)),
                ImportStatement(TEXT_SUMMARY_URL, ('textSummary',)),
            ],
        )

        return imports

    def compile(self, feature: Feature, scenario: ResolvedScenario) -> ScriptModel:
        library_path = library_import_path(self.output_dir, self.library_dir)

        model = ScriptModel(
            feature_name=feature.name,
            scenario_name=scenario.name,
            examples_name=scenario.examples_name,
            parameters=dict(scenario.parameters),
            generated_at=format_timestamp(self.clock()),
            load_profile=derive_load_profile(scenario.parameters),
            report_dir=self.report_dir,
            library_path=library_path,
        )

        symbols: dict[str, None] = {}
        metrics: dict[str, Metric] = {}
        steps: list[Step] = [*(feature.background or ()), *scenario.steps]

        for step in steps:
            step_match = self.registry.match(step.text)

            if step_match is None:
                error = UnrecognizedStepError(step.keyword, step.text)
                logger.warning('%s: %s', scenario.name, error)
                model.unrecognized.append(error)
                model.blocks.append(
                    StepBlock(
                        keyword=step.keyword,
                        text=step.text,
                        code=f'// unrecognized step: [{step.keyword}] {step.text}\n// add a step definition that matches this text',
                        recognized=False,
                    ),
                )
                continue

            definition, groups = step_match
            logger.debug('%s: "%s" matched "%s" with %r', scenario.name, step, definition.pattern, groups)

            model.blocks.append(StepBlock(keyword=step.keyword, text=step.text, code=definition.render_code(groups)))

            symbols.update(dict.fromkeys(definition.imports))

            # same name keeps its first position, but the latest declaration
            for metric in definition.metrics:
                metrics[metric.name] = metric

            threshold = definition.render_threshold(groups)
            if threshold is not None:
                model.thresholds.setdefault(threshold.metric, []).append(threshold.rule)

            setup = definition.render_setup()
            if setup is not None:
                if model.setup is not None and model.setup != setup:
                    logger.warning('%s: setup from "%s" replaces setup from an earlier step', scenario.name, step)
                model.setup = setup

        model.metrics = list(metrics.values())
        model.imports = self._compile_imports(list(symbols), model.metrics, library_path)

        return model

    def render(self, model: ScriptModel) -> str:
        template = self.environment.get_template(SCRIPT_TEMPLATE)

        return template.render(model=model)

    def script_path(self, scenario: ResolvedScenario) -> Path:
        return self.output_dir / f'{slugify(scenario.name)}.js'

    def generate(self, feature: Feature, scenario: ResolvedScenario) -> GeneratedScript:
        model = self.compile(feature, scenario)
        source = self.render(model)
        path = self.script_path(scenario)

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(source, encoding='utf-8')
        except OSError as e:
            raise GenerationIOError(path, e) from e

        logger.info('generated %s', path.as_posix())

        return GeneratedScript(
            feature_name=feature.name,
            scenario_name=scenario.name,
            path=path,
            source=source,
            load_profile=model.load_profile,
            unrecognized_steps=tuple(model.unrecognized),
        )

    def generate_all(self, feature: Feature) -> list[GeneratedScript]:
        return [self.generate(feature, scenario) for scenario in feature.scenarios]
