"""Small builders for scene XML documents used across the tests."""

GLOBALS = '<globals background="0 0 0 1" ambient="0.2 0.2 0.2 1" />'

SKYBOX = (
    '<skybox size="100 50 100" center="0 10 0" emissive="1 1 1 1" intensity="0.5" '
    'up="sky/up.png" down="sky/down.png" left="sky/left.png" right="sky/right.png" '
    'front="sky/front.png" back="sky/back.png" />'
)

PERSPECTIVE = '<perspective id="cam1" angle="60" near="0.1" far="1000" location="0 0 10" target="0 0 0" />'

CAMERAS = f'<cameras initial="cam1">{PERSPECTIVE}</cameras>'

MATERIAL_RED = '<material id="red" color="1 0 0 1" specular="0 0 0 1" emissive="0 0 0 1" shininess="10" />'


def material(ident, **attrs):
    extra = "".join(f' {k}="{v}"' for k, v in attrs.items())
    return (f'<material id="{ident}" color="1 1 1 1" specular="0.5 0.5 0.5 1" '
            f'emissive="0 0 0 1" shininess="30"{extra} />')


def texture(ident, filepath=None, **attrs):
    extra = "".join(f' {k}="{v}"' for k, v in attrs.items())
    return f'<texture id="{ident}" filepath="{filepath or ident + ".png"}"{extra} />'


def node(ident, children="", transforms=None, materialref=None, **attrs):
    extra = "".join(f' {k}="{v}"' for k, v in attrs.items())
    parts = [f'<node id="{ident}"{extra}>']
    if transforms is not None:
        parts.append(f"<transforms>{transforms}</transforms>")
    if materialref is not None:
        parts.append(f'<materialref id="{materialref}" />')
    parts.append(f"<children>{children}</children>")
    parts.append("</node>")
    return "".join(parts)


def noderef(ident):
    return f'<noderef id="{ident}" />'


def primitive(inner):
    return f"<primitive>{inner}</primitive>"


RECTANGLE = primitive('<rectangle xy1="0 0" xy2="1 1" />')


def scene_xml(graph, textures="", materials="", cameras=CAMERAS, fog="",
              globals_=GLOBALS, skybox=SKYBOX, rootid="root", lods=""):
    return (
        "<yaf>"
        f"{globals_}{fog}{skybox}"
        f"<textures>{textures}</textures>"
        f"<materials>{materials}</materials>"
        f"{cameras}"
        f'<graph rootid="{rootid}">{graph}{lods}</graph>'
        "</yaf>"
    )


def minimal_scene(children=RECTANGLE, **kwargs):
    return scene_xml(node("root", children), **kwargs)


def node_chain(length, leaf=RECTANGLE, transforms=None):
    """Graph of `length` nodes n0 -> n1 -> ... each referencing the next."""
    graph = "".join(node(f"n{i}", noderef(f"n{i + 1}"), transforms=transforms)
                    for i in range(length - 1))
    return graph + node(f"n{length - 1}", leaf, transforms=transforms)
