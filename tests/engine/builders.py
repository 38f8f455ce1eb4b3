"""Small component builders shared by engine tests."""
from solarsetup.core.models import make_component


def panel(id="p1", **props):
    return make_component("Individual Solar Panel", id=id, name=f"Panel {id}", properties=props)


def array(id="a1", panel_id="p1", series="1", strings="1", mppt_id=""):
    return make_component(
        "Solar Array Configuration",
        id=id,
        name=f"Array {id}",
        properties={"selectedPanelId": panel_id, "panelsInSeries": series, "numberOfStrings": strings, "assignedMpptId": mppt_id},
    )


def battery(id="b1", **props):
    return make_component("Battery", id=id, name=f"Battery {id}", properties=props)


def inverter(id="i1", **props):
    return make_component("Inverter", id=id, name=f"Inverter {id}", properties=props)


def mppt(id="m1", **props):
    return make_component("MPPT Charge Controller", id=id, name=f"MPPT {id}", properties=props)


