import pytest

from hotedit.hotedit_runtime import EditController
from hotedit.hotedit_config import EditorConfig
from hotedit.hotedit_datatypes import (
    EditRequest, HandleNotFound, InvalidTarget, ParseError, EvalError,
)


@pytest.fixture
def namespace():
    return {}


@pytest.fixture
def controller(namespace):
    return EditController(namespace=namespace)


class Widget:
    def __init__(self):
        self.label = 'start'


@pytest.mark.asyncio
async def test_load_path_is_unmodified(controller):
    target = {'greeting': "it's fine"}
    h = controller.obj_id_for(target)
    res = await controller.handle(EditRequest(h, 'greeting', name='target'))
    assert res.status == 'unmodified'
    assert res.source_text == "'it\\'s fine'"
    assert res.ok
    assert (res.handle, res.key, res.name) == (h, 'greeting', 'target')


@pytest.mark.asyncio
async def test_loaded_text_saves_back_unchanged(controller):
    target = {'greeting': "it's fine"}
    h = controller.obj_id_for(target)
    loaded = await controller.handle(EditRequest(h, 'greeting'))
    saved = await controller.handle(EditRequest(h, 'greeting', text=loaded.source_text))
    assert saved.status == 'saved'
    assert target['greeting'] == "it's fine"


@pytest.mark.asyncio
async def test_save_uses_only_the_leading_expression(controller, namespace):
    calls = []
    namespace['do_evil_thing'] = lambda: calls.append(1)
    target = {'n': 0}
    h = controller.obj_id_for(target)
    res = await controller.handle(EditRequest(h, 'n', text="1+1; do_evil_thing()"))
    assert res.status == 'saved'
    assert res.source_text == '1+1'
    assert target['n'] == 2
    assert calls == []


@pytest.mark.asyncio
async def test_parse_error_leaves_target_untouched(controller):
    target = {'n': 5}
    h = controller.obj_id_for(target)
    res = await controller.handle(EditRequest(h, 'n', text="{"))
    assert res.status.startswith("error: ParseError")
    assert isinstance(res.error, ParseError)
    assert not res.not_found
    assert res.source_text == "{"
    assert target == {'n': 5}


@pytest.mark.asyncio
async def test_eval_error_leaves_target_untouched(controller):
    target = {'n': 5}
    h = controller.obj_id_for(target)
    res = await controller.handle(EditRequest(h, 'n', text="missing + 1"))
    assert res.status.startswith("error: EvalError: NameError")
    assert isinstance(res.error, EvalError)
    assert target == {'n': 5}


@pytest.mark.asyncio
async def test_save_transplants_old_properties(controller):
    target = {'cfg': {'a': 1, 'b': 2}}
    h = controller.obj_id_for(target)
    res = await controller.handle(EditRequest(h, 'cfg', text="{'b': 3}"))
    assert res.status == 'saved'
    assert target['cfg'] == {'a': 1, 'b': 3}


@pytest.mark.asyncio
async def test_primitive_old_value_is_replaced_as_is(controller):
    target = {'v': 5}
    h = controller.obj_id_for(target)
    res = await controller.handle(EditRequest(h, 'v', text="'hello'"))
    assert res.status == 'saved'
    assert target['v'] == 'hello'


@pytest.mark.asyncio
async def test_function_redefinition_keeps_attachments(controller):
    w = Widget()

    def render():
        return 'old'
    render.cache = {'hits': 4}
    w.render = render

    h = controller.obj_id_for(w)
    res = await controller.handle(EditRequest(h, 'render', text="lambda: 'new'"))
    assert res.status == 'saved'
    assert w.render() == 'new'
    assert w.render.cache is render.cache


@pytest.mark.asyncio
async def test_save_creates_own_attribute_over_inherited(controller):
    class Themed:
        color = 'red'

    t = Themed()
    h = controller.obj_id_for(t)
    assert controller.load(h, 'color') == 'None'
    res = await controller.handle(EditRequest(h, 'color', text="'blue'"))
    assert res.status == 'saved'
    assert t.color == 'blue'
    assert Themed.color == 'red'


@pytest.mark.asyncio
async def test_sequence_targets(controller):
    items = [1, 2, 3]
    h = controller.obj_id_for(items)
    res = await controller.handle(EditRequest(h, '1', text="20"))
    assert res.status == 'saved'
    assert items == [1, 20, 3]
    res = await controller.handle(EditRequest(h, '9', text="0"))
    assert res.status.startswith("error: EvalError: IndexError")
    assert items == [1, 20, 3]


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [None, "1"])
async def test_bad_handle_is_not_found(controller, text):
    controller.obj_id_for({})
    res = await controller.handle(EditRequest(len(controller.registry), 'k', text=text))
    assert res.status == 'not-found'
    assert res.not_found
    assert isinstance(res.error, HandleNotFound)


@pytest.mark.asyncio
async def test_handle_params_from_form_fields(controller):
    target = {'k': 'v'}
    controller.obj_id_for(target)
    res = await controller.handle_params({'handle': ['0'], 'key': ['k'], 'name': ['t']})
    assert res.status == 'unmodified'
    assert res.source_text == "'v'"
    res = await controller.handle_params({'handle': '0', 'key': 'k', 'text': "'w'"})
    assert res.status == 'saved'
    assert target['k'] == 'w'


@pytest.mark.asyncio
async def test_handle_params_rejects_garbage_handle(controller):
    res = await controller.handle_params({'handle': 'abc', 'key': 'k'})
    assert res.not_found


def test_save_and_load_raise_directly(controller):
    target = {'n': 1}
    h = controller.obj_id_for(target)
    with pytest.raises(ParseError):
        controller.save(h, 'n', '{')
    with pytest.raises(HandleNotFound):
        controller.load(h + 1, 'n')
    assert controller.save(h, 'n', '  n_value := 7  # trailing') == 'n_value := 7'
    assert target['n'] == 7


def test_edit_url(controller):
    target = {}
    url = controller.edit_url(target, 'my things', 'a/b')
    assert url == "/edit?handle=0&name=my%20things&key=a%2Fb"
    assert controller.edit_url(target) == "/edit?handle=0"
    assert controller.edit_url([], key="x") == "/edit?handle=1&key=x"


def test_edit_url_uses_configured_route():
    controller = EditController(config=EditorConfig(route='/admin/edit'))
    assert controller.edit_url(object(), 'o') == "/admin/edit?handle=0&name=o"


@pytest.mark.parametrize("value", [5, "text", None])
def test_edit_url_rejects_primitives(controller, value):
    with pytest.raises(InvalidTarget):
        controller.edit_url(value, 'v', 'k')


def test_shared_registry_across_controllers():
    first = EditController(namespace={})
    second = EditController(first.registry, namespace={})
    target = {'x': 1}
    h = first.obj_id_for(target)
    assert second.load(h, 'x') == '1'


def test_debug_trace_goes_to_stderr(capsys):
    controller = EditController(config=EditorConfig(debug=True), namespace={})
    h = controller.obj_id_for({'a': {'x': 1}})
    controller.save(h, 'a', "{'y': 2}")
    err = capsys.readouterr().err
    assert "[DBG] register dict -> 0" in err
    assert "[DBG] transplanted ['x']" in err


@pytest.mark.asyncio
async def test_deeply_nested_text_is_a_parse_error(controller):
    target = {'n': 5}
    h = controller.obj_id_for(target)
    res = await controller.handle(EditRequest(h, 'n', text="-" * 200000 + "1"))
    assert res.status.startswith("error: ParseError")
    assert target == {'n': 5}


def test_evaluation_runs_outside_the_registry_lock(controller, namespace):
    import threading

    def register_from_thread():
        t = threading.Thread(target=controller.obj_id_for, args=(object(),))
        t.start()
        t.join(timeout=5)
        return not t.is_alive()

    namespace['register_from_thread'] = register_from_thread
    target = {'done': None}
    h = controller.obj_id_for(target)
    controller.save(h, 'done', "register_from_thread()")
    assert target['done'] is True
    assert len(controller.registry) == 2


@pytest.mark.asyncio
async def test_inherited_function_attributes_are_transplanted(controller):
    def render(self):
        return 'old'
    render.cache = {'hits': 4}

    class Panel:
        pass
    Panel.render = render

    p = Panel()
    h = controller.obj_id_for(p)
    res = await controller.handle(EditRequest(h, 'render', text="lambda: 'new'"))
    assert res.status == 'saved'
    assert p.render() == 'new'
    assert p.render.cache is render.cache
    assert Panel.render is render


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["a\x00b", "bell\x07", "a\u2028b"])
async def test_control_characters_round_trip(controller, value):
    target = {'s': value}
    h = controller.obj_id_for(target)
    loaded = await controller.handle(EditRequest(h, 's'))
    saved = await controller.handle(EditRequest(h, 's', text=loaded.source_text))
    assert saved.status == 'saved'
    assert target['s'] == value
