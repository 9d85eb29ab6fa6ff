import json
import logging

import pytest

from platz._core.engines.loggers import LogFormat, RequestJsonFormatter, RequestLogger, \
                                        RequestPrefixingJsonFormatter, \
                                        RequestPrefixingTextFormatter, RequestTextFormatter, \
                                        configure, make_formatter


def _record(message='hello', level=logging.INFO, **extra):
    record = logging.LogRecord('platz.tests', level, __file__, 1, message, (), None)
    for key, val in extra.items():
        setattr(record, key, val)
    return record


@pytest.mark.parametrize('log_format, log_prefix, cls', [
    (LogFormat.PLAIN, False, RequestTextFormatter),
    (LogFormat.PLAIN, True, RequestPrefixingTextFormatter),
    (LogFormat.FULL, None, RequestPrefixingTextFormatter),
    (LogFormat.JSON, None, RequestJsonFormatter),
    (LogFormat.JSON, True, RequestPrefixingJsonFormatter),
    ('%(message)s', False, RequestTextFormatter),
])
def test_formatter_selection(log_format, log_prefix, cls):
    formatter = make_formatter(log_format=log_format, log_prefix=log_prefix)
    assert type(formatter) is cls


def test_unsupported_format():
    with pytest.raises(ValueError):
        make_formatter(log_format=123)  # type: ignore[arg-type]


def test_text_with_prefix():
    formatter = make_formatter(log_format=LogFormat.PLAIN, log_prefix=True)
    record = _record(platz_ref={'method': 'GET', 'path': '/api/v2/things'})
    assert formatter.format(record) == '[GET /api/v2/things] hello'


def test_text_without_prefix():
    formatter = make_formatter(log_format=LogFormat.PLAIN, log_prefix=False)
    record = _record(platz_ref={'method': 'GET', 'path': '/api/v2/things'})
    assert formatter.format(record) == 'hello'


def test_text_with_prefix_but_no_reference():
    formatter = make_formatter(log_format=LogFormat.PLAIN, log_prefix=True)
    assert formatter.format(_record()) == 'hello'


def test_prefixing_does_not_modify_the_record():
    formatter = make_formatter(log_format=LogFormat.PLAIN, log_prefix=True)
    record = _record(platz_ref={'method': 'GET', 'path': '/x'})
    formatter.format(record)
    assert record.msg == 'hello'


def test_json_with_default_refkey():
    formatter = make_formatter(log_format=LogFormat.JSON)
    record = _record(platz_ref={'method': 'GET', 'path': '/api/v2/things'})
    data = json.loads(formatter.format(record))
    assert data['message'] == 'hello'
    assert data['request'] == {'method': 'GET', 'path': '/api/v2/things'}
    assert data['severity'] == 'info'
    assert 'platz_ref' not in data
    assert 'timestamp' in data


def test_json_with_custom_refkey():
    formatter = make_formatter(log_format=LogFormat.JSON, log_refkey='call')
    record = _record(platz_ref={'method': 'GET', 'path': '/x'})
    data = json.loads(formatter.format(record))
    assert data['call'] == {'method': 'GET', 'path': '/x'}
    assert 'request' not in data


@pytest.mark.parametrize('level, severity', [
    (logging.DEBUG, 'debug'),
    (logging.INFO, 'info'),
    (logging.WARNING, 'warn'),
    (logging.ERROR, 'error'),
    (logging.CRITICAL, 'fatal'),
])
def test_json_severities(level, severity):
    formatter = make_formatter(log_format=LogFormat.JSON)
    data = json.loads(formatter.format(_record(level=level)))
    assert data['severity'] == severity


def test_request_logger_carries_the_reference(caplog):
    caplog.set_level(logging.DEBUG)
    logger = RequestLogger(method='get', path='/api/v2/things', base=logging.getLogger('platz.tests'))
    logger.debug("hello", extra={'other': 'value'})
    assert len(caplog.records) == 1
    record = caplog.records[0]
    assert record.platz_ref == {'method': 'GET', 'path': '/api/v2/things'}
    assert record.other == 'value'


def test_request_logger_default_base(caplog):
    caplog.set_level(logging.DEBUG)
    logger = RequestLogger(method='get', path='/x')
    logger.info("hello")
    assert caplog.records[0].name == 'platz.clients'


@pytest.mark.usefixtures('restored_logging')
@pytest.mark.parametrize('kwargs, level', [
    (dict(), logging.INFO),
    (dict(verbose=True), logging.DEBUG),
    (dict(debug=True), logging.DEBUG),
    (dict(quiet=True), logging.WARNING),
])
def test_configure_levels(kwargs, level):
    configure(**kwargs)
    assert logging.getLogger().level == level


@pytest.mark.usefixtures('restored_logging')
def test_configure_silences_the_libraries():
    configure()
    assert not logging.getLogger('asyncio').propagate
    assert not logging.getLogger('aiohttp').propagate


@pytest.mark.usefixtures('restored_logging')
def test_configure_keeps_the_libraries_in_debug():
    configure(debug=True)
    assert logging.getLogger('asyncio').propagate
    assert logging.getLogger('aiohttp').propagate
