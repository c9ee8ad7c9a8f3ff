"""Outputs: speech, beeps, the text buffer and e-mail."""
