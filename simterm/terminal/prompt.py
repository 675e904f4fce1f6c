from simterm.terminal.state import IOMode, PromptStyle, SessionState


def mode_as_string(state: SessionState) -> str:
    if state.prompt_style == PromptStyle.SHORT:
        mode = "I=H:" if state.input_mode == IOMode.HEX else "I=A:"
        mode += "O=H" if state.output_mode == IOMode.HEX else "O=A"
    else:
        mode = "IN=HEX:" if state.input_mode == IOMode.HEX else "IN=ASCII:"
        mode += "OUT=HEX" if state.output_mode == IOMode.HEX else "OUT=ASCII"
    return mode


def format_prompt(state: SessionState) -> str:
    """Renders the session state as the next prompt, or "" when prompts are off."""
    if state.prompt_style == PromptStyle.NONE:
        return ""
    if state.prompt_style == PromptStyle.SHORT:
        return (f"{state.terminal_node_name}-{state.active_connection_label}->{state.target_node_name}"
                f"@({state.bus_type.name}){state.bus_name}[{mode_as_string(state)}] $ ")
    return (f"{state.terminal_node_name}-{state.active_connection_label}<{state.target_node_name}>"
            f":({state.bus_type.name}){state.bus_name}:[{mode_as_string(state)}] $ ")
