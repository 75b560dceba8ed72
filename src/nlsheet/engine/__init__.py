"""Grid model, coordinate codec, evaluator, instruction matcher, and host session."""
