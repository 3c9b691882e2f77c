"""Wire protocol pieces of the talk channel: value grammar, framing and errors."""
